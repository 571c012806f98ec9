"""PostgreSQL storage operations"""
import asyncio
import logging
from typing import Any, Dict, List

import psycopg2
import pandas as pd

from jobharvest.config import DB_CONFIG
from jobharvest.data_sources.powertofly.models import JobRecord
from jobharvest.data_sources.powertofly.parser import records_to_dataframe

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "powertofly_jobs"

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS {table} (
        job_id TEXT PRIMARY KEY,
        url TEXT NOT NULL,
        title TEXT,
        company TEXT,
        location TEXT,
        is_remote BOOLEAN,
        remote_type TEXT,
        region TEXT,
        salary TEXT,
        job_type TEXT,
        date_posted TEXT,
        description_html TEXT,
        description_text TEXT,
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW()
    )
"""

# Columns refreshed when a job is scraped again
UPDATE_COLUMNS = [
    'title',
    'company',
    'location',
    'is_remote',
    'remote_type',
    'region',
    'salary',
    'job_type',
    'date_posted',
    'description_html',
    'description_text',
]


def get_db_connection():
    """Get PostgreSQL connection"""
    return psycopg2.connect(
        host=DB_CONFIG["host"],
        port=DB_CONFIG["port"],
        user=DB_CONFIG["user"],
        password=DB_CONFIG["password"],
        dbname=DB_CONFIG["database"]
    )


def build_upsert_query(columns: List[str], table: str = DEFAULT_TABLE) -> str:
    """INSERT ... ON CONFLICT (job_id) that only updates changed columns"""
    col_str = ", ".join(['"{}"'.format(c) for c in columns])
    placeholders = ", ".join(["%s"] * len(columns))

    update_cols = [c for c in UPDATE_COLUMNS if c in columns]
    update_parts = ['"{col}" = EXCLUDED."{col}"'.format(col=col) for col in update_cols]
    where_clause = " OR ".join(
        '({tbl}."{col}" IS DISTINCT FROM EXCLUDED."{col}")'.format(tbl=table, col=col)
        for col in update_cols
    )
    update_parts.append('"updated_at" = NOW()')

    return """
        INSERT INTO {table} ({cols})
        VALUES ({placeholders})
        ON CONFLICT (job_id)
        DO UPDATE SET {updates}
        WHERE {where}
        RETURNING (xmax = 0) AS is_inserted
    """.format(
        table=table,
        cols=col_str,
        placeholders=placeholders,
        updates=", ".join(update_parts),
        where=where_clause
    )


def bulk_upsert(df: pd.DataFrame, table: str = DEFAULT_TABLE, conn=None) -> Dict[str, Any]:
    """Bulk upsert DataFrame to PostgreSQL"""
    if df.empty:
        return {"inserted": 0, "updated": 0, "unchanged": 0}

    own_conn = conn is None
    try:
        conn = conn or get_db_connection()
        cur = conn.cursor()
        cur.execute(CREATE_TABLE_SQL.format(table=table))
        query = build_upsert_query(list(df.columns), table)

        inserted = 0
        updated = 0
        unchanged = 0

        for _, row in df.iterrows():
            values = tuple(None if v is None or pd.isna(v) else v for v in row.values)
            cur.execute(query, values)
            result = cur.fetchone()

            if result is None:
                unchanged += 1
            elif result[0]:
                inserted += 1
            else:
                updated += 1

        conn.commit()

        logger.info("Upserted to {}: {} inserted, {} updated, {} unchanged".format(
            table, inserted, updated, unchanged
        ))

        return {"inserted": inserted, "updated": updated, "unchanged": unchanged}

    except Exception as e:
        if conn:
            conn.rollback()
        logger.error("Database error: {}".format(e))
        raise
    finally:
        if conn and own_conn:
            conn.close()


class PostgresSink:
    """Buffer records and upsert them in one transaction on close"""

    def __init__(self, table: str = DEFAULT_TABLE):
        self.table = table
        self.records: List[JobRecord] = []
        self.result: Dict[str, Any] = {}

    async def append(self, record: JobRecord) -> None:
        self.records.append(record)

    async def close(self) -> None:
        df = records_to_dataframe(self.records)
        self.result = await asyncio.to_thread(bulk_upsert, df, self.table)
