"""Storage module exports - record sinks"""
from .local import JsonlSink, MemorySink
from .minio_storage import MinioSink, upload_records_to_minio, get_minio_client
from .postgres import PostgresSink, bulk_upsert, get_db_connection

SINKS = {
    'jsonl': JsonlSink,
    'memory': MemorySink,
    'minio': MinioSink,
    'postgres': PostgresSink,
}

__all__ = [
    'JsonlSink',
    'MemorySink',
    'MinioSink',
    'PostgresSink',
    'upload_records_to_minio',
    'get_minio_client',
    'bulk_upsert',
    'get_db_connection',
    'SINKS',
]
