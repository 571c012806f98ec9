"""MinIO storage operations"""
import asyncio
import io
import json
import logging
from datetime import datetime
from typing import Any, Dict, List

from minio import Minio

from jobharvest.config import MINIO_CONFIG
from jobharvest.data_sources.powertofly.models import JobRecord

logger = logging.getLogger(__name__)


def get_minio_client() -> Minio:
    """Get MinIO client"""
    return Minio(
        MINIO_CONFIG["endpoint"],
        access_key=MINIO_CONFIG["access_key"],
        secret_key=MINIO_CONFIG["secret_key"],
        secure=MINIO_CONFIG["secure"]
    )


def upload_records_to_minio(records: List[JobRecord], client: Minio = None,
                            bucket: str = None) -> Dict[str, Any]:
    """Upload records as one JSONL object"""
    try:
        client = client or get_minio_client()
        bucket = bucket or MINIO_CONFIG["bucket"]

        if not client.bucket_exists(bucket):
            client.make_bucket(bucket)

        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        object_name = f"records/powertofly_{timestamp}.jsonl"

        lines = [json.dumps(r.to_dict(), ensure_ascii=False) for r in records]
        data = ("\n".join(lines) + "\n").encode('utf-8') if lines else b""
        client.put_object(
            bucket,
            object_name,
            io.BytesIO(data),
            len(data),
            content_type='application/x-ndjson'
        )

        logger.info(f"Uploaded {object_name} to MinIO ({len(records)} records, {len(data)} bytes)")

        return {
            "success": True,
            "bucket": bucket,
            "object": object_name,
            "records": len(records),
            "size": len(data)
        }

    except Exception as e:
        logger.error(f"MinIO upload error: {e}")
        return {"success": False, "error": str(e)}


class MinioSink:
    """Buffer records and upload them as one object on close"""

    def __init__(self, client: Minio = None, bucket: str = None):
        self.client = client
        self.bucket = bucket
        self.records: List[JobRecord] = []
        self.result: Dict[str, Any] = {}

    async def append(self, record: JobRecord) -> None:
        self.records.append(record)

    async def close(self) -> None:
        if not self.records:
            logger.info("No records to upload to MinIO")
            return
        self.result = await asyncio.to_thread(
            upload_records_to_minio, self.records, self.client, self.bucket
        )
