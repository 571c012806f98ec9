"""Data Quality configuration"""
import os

# DQ Thresholds (from env vars)
DQ_MIN_RECORDS = int(os.getenv("DQ_MIN_RECORDS", "1"))
DQ_MAX_DUPLICATE_RATE = float(os.getenv("DQ_MAX_DUPLICATE_RATE", "0.05"))
DQ_MAX_STUB_RATE = float(os.getenv("DQ_MAX_STUB_RATE", "0.50"))
DQ_SUCCESS_THRESHOLD = float(os.getenv("DQ_SUCCESS_THRESHOLD", "0.90"))
DQ_WARNING_THRESHOLD = float(os.getenv("DQ_WARNING_THRESHOLD", "0.50"))
