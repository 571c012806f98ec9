"""
PowerToFly Harvest DAG - Discover → Extract → Store → Validate
Schedule: Daily at 6:00 AM

Flow:
1. Harvest records into a local JSONL file
2. Upload the file contents to MinIO (backup)
3. Upsert records to job_records
4. Run the quality gate
"""
from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.python import PythonOperator
from airflow.operators.empty import EmptyOperator
import logging
import sys

sys.path.insert(0, '/opt/airflow')

logger = logging.getLogger(__name__)

default_args = {
    'owner': 'airflow',
    'depends_on_past': False,
    'retries': 2,
    'retry_delay': timedelta(minutes=5),
    'email_on_failure': False,
}

HARVEST_INPUT = {
    'keyword': '',
    'location': '',
    'results_wanted': 100,
    'max_pages': 20,
    'collectDetails': True,
}


def _load_records(path):
    import json
    from jobharvest.data_sources.powertofly import JobRecord

    with open(path, encoding='utf-8') as f:
        return [JobRecord(**json.loads(line)) for line in f if line.strip()]


def harvest_task(**kwargs):
    """Run discovery and detail extraction"""
    import asyncio
    from jobharvest.pipeline import run_scrape
    from jobharvest.storage import JsonlSink

    sink = JsonlSink()

    async def _run():
        try:
            return await run_scrape(kwargs.get('harvest_input', HARVEST_INPUT), sink,
                                    run_id=kwargs.get('run_id'))
        finally:
            await sink.close()

    metrics = asyncio.run(_run())
    logger.info(f"Harvest finished: {metrics.to_dict()}")

    kwargs['ti'].xcom_push(key='records_path', value=str(sink.path))
    return metrics.to_dict()


def upload_minio_task(**kwargs):
    """Upload harvested records to MinIO"""
    from jobharvest.storage import upload_records_to_minio

    path = kwargs['ti'].xcom_pull(key='records_path', task_ids='harvest')
    records = _load_records(path) if path else []

    if not records:
        logger.warning("No records to upload")
        return {"uploaded": 0}

    return upload_records_to_minio(records)


def upsert_task(**kwargs):
    """Upsert records to PostgreSQL"""
    from jobharvest.data_sources.powertofly import records_to_dataframe
    from jobharvest.storage import bulk_upsert

    path = kwargs['ti'].xcom_pull(key='records_path', task_ids='harvest')
    records = _load_records(path) if path else []

    if not records:
        logger.warning("No records to insert")
        return {"inserted": 0, "updated": 0, "unchanged": 0}

    df = records_to_dataframe(records)
    logger.info(f"DataFrame shape: {df.shape}")

    result = bulk_upsert(df)
    logger.info(f"DB: {result['inserted']} inserted, {result['updated']} updated")
    return result


def validate_task(**kwargs):
    """Fail the task when the quality gate hard-fails"""
    from jobharvest.quality import RecordValidator, QualityGate

    path = kwargs['ti'].xcom_pull(key='records_path', task_ids='harvest')
    records = _load_records(path) if path else []

    result = RecordValidator().validate(records)
    gate = QualityGate().evaluate(result)
    logger.info(f"Quality gate: {gate.status} - {gate.message}")
    return {"status": gate.status, "valid_rate": result.valid_rate}


with DAG(
    'powertofly_harvest',
    default_args=default_args,
    description='Daily PowerToFly harvest → MinIO + PostgreSQL',
    schedule_interval='0 6 * * *',
    start_date=datetime(2024, 1, 1),
    catchup=False,
    tags=['production', 'crawler'],
    max_active_runs=1,
) as dag:

    start = EmptyOperator(task_id='start')

    harvest = PythonOperator(
        task_id='harvest',
        python_callable=harvest_task,
    )

    upload_minio = PythonOperator(
        task_id='upload_minio',
        python_callable=upload_minio_task,
    )

    upsert = PythonOperator(
        task_id='upsert',
        python_callable=upsert_task,
    )

    validate = PythonOperator(
        task_id='validate',
        python_callable=validate_task,
    )

    end = EmptyOperator(task_id='end')

    # Flow: harvest → [upload_minio, upsert] → validate → end
    start >> harvest >> [upload_minio, upsert]
    upsert >> validate >> end
    upload_minio >> end
