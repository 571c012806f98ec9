"""Storage configuration (local output, MinIO, PostgreSQL)"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).parent.parent.parent
OUTPUT_DIR = Path(os.getenv("HARVEST_OUTPUT_DIR", str(BASE_DIR / "data" / "output")))

MINIO_CONFIG = {
    "endpoint": os.getenv("MINIO_ENDPOINT", "minio:9000"),
    "access_key": os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
    "secret_key": os.getenv("MINIO_SECRET_KEY", "minioadmin"),
    "bucket": os.getenv("MINIO_RECORDS_BUCKET", "jobharvest-records"),
    "secure": os.getenv("MINIO_SECURE", "false").lower() == "true",
}

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "postgres"),
    "port": int(os.getenv("DB_PORT", "5432")),
    "user": os.getenv("DB_USER", "jobharvest"),
    "password": os.getenv("DB_PASSWORD", "jobharvest"),
    "database": os.getenv("DB_NAME", "jobharvest"),
}
