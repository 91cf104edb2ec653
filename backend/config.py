"""Application configuration via environment variables."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# Geometry defaults (meters)
DEFAULT_ROOM_HEIGHT = float(os.getenv("DEFAULT_ROOM_HEIGHT", "3.0"))
DEFAULT_STAIR_HEIGHT = float(os.getenv("DEFAULT_STAIR_HEIGHT", "3.0"))
WALL_THICKNESS = float(os.getenv("WALL_THICKNESS", "0.1"))
SLAB_THICKNESS = float(os.getenv("SLAB_THICKNESS", "0.1"))

# Layout validation / auto-fix
ALLOWED_GAP = float(os.getenv("ALLOWED_GAP", "0.02"))
MAX_SNAP_DISTANCE = float(os.getenv("MAX_SNAP_DISTANCE", "0.25"))
SEPARATION_GAP = float(os.getenv("SEPARATION_GAP", "0.5"))
CONNECTOR_CLEARANCE = float(os.getenv("CONNECTOR_CLEARANCE", "0.1"))

# File Storage
EXPORT_DIR = BASE_DIR / "exports"
EXPORT_DIR.mkdir(exist_ok=True)

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
