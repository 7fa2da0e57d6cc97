"""
Sandbox data import endpoint
"""

import secrets
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status

from .system import SandboxSystem, get_sandbox_system
from ..import_models import SandboxDataImport
from ..logging_config import get_logger


router = APIRouter()
logger = get_logger("sandbox.api")


@router.post("/data-import", status_code=status.HTTP_201_CREATED)
async def import_sandbox_data(
    document: SandboxDataImport,
    secret_token: Optional[str] = Query(None),
    system: SandboxSystem = Depends(get_sandbox_system)
):
    """Import banks, users, accounts and transactions in one call"""
    if not system.config.data_import_enabled:
        raise HTTPException(status_code=403, detail="Data import is disabled for this API instance.")

    expected = system.config.data_import_secret
    if expected and not secrets.compare_digest(secret_token or "", expected):
        logger.warning("Data import attempted with an invalid secret token")
        raise HTTPException(status_code=401, detail="Invalid secret token")

    result = system.importer.import_data(document)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)

    return {
        "message": "Data import succeeded",
        "warnings": result.warnings,
        "counts": result.counts
    }
