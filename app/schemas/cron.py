# File: app/schemas/cron.py
from pydantic import BaseModel
from typing import Any, Dict, List


class CronResult(BaseModel):
    """Response body of the manual trigger endpoints"""
    success: bool
    message: str
    counts: Dict[str, int] = {}
    details: List[Dict[str, Any]] = []
