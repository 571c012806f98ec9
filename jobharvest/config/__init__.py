"""Configuration exports"""
from .storage_config import MINIO_CONFIG, DB_CONFIG, OUTPUT_DIR
from .input_config import ScrapeInput, is_detail_url

__all__ = ['MINIO_CONFIG', 'DB_CONFIG', 'OUTPUT_DIR', 'ScrapeInput', 'is_detail_url']
