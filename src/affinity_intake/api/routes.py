"""Run submission and listing endpoints."""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile

from affinity_intake.api.dependencies import IntakeServices, get_services
from affinity_intake.api_clients.identity import extract_bearer_token
from affinity_intake.errors import AuthenticationError, ConfigurationError, InputValidationError
from affinity_intake.persistence import DEFAULT_SORT, SORT_ORDERS
from affinity_intake.pipeline import Submission

logger = structlog.get_logger()

router = APIRouter(prefix="/runs", tags=["runs"])


def _authenticate(services: IntakeServices, authorization: Optional[str]) -> str:
    """Check server settings, then resolve the bearer token to a user id."""
    services.config.require_server_settings()
    if services.identity is None:
        raise ConfigurationError("Server configuration is incomplete: identity")

    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Authentication required")
    return services.identity.verify(token)


@router.post("")
def create_runs(
    services: Annotated[IntakeServices, Depends(get_services)],
    ligand_csv: Annotated[Optional[UploadFile], File()] = None,
    target_csv: Annotated[Optional[UploadFile], File()] = None,
    memo: Annotated[str, Form()] = "",
    indication_id: Annotated[Optional[str], Form()] = None,
    authorization: Annotated[Optional[str], Header()] = None,
) -> dict:
    """Submit a ligand table and a target table as runs.

    Returns:
        200: {"summary": {"total", "queued", "done", "failed"}}
        400: Missing files, no data rows, missing columns, invalid indication
        401: Missing or rejected bearer token
        500: Missing server configuration or store failure
    """
    user_id = _authenticate(services, authorization)

    if ligand_csv is None or target_csv is None:
        raise InputValidationError("Two CSV files are required: ligand_csv and target_csv")

    submission = Submission(
        ligand_data=ligand_csv.file.read(),
        target_data=target_csv.file.read(),
        memo=memo,
        indication_id=indication_id,
    )

    result = services.pipeline.submit(submission, user_id)

    return {"summary": result.summary.model_dump()}


@router.get("")
def list_runs(
    services: Annotated[IntakeServices, Depends(get_services)],
    authorization: Annotated[Optional[str], Header()] = None,
    q: Annotated[Optional[str], Query()] = None,
    sort: Annotated[str, Query()] = DEFAULT_SORT,
    page: Annotated[int, Query(ge=0)] = 0,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """List the caller's runs with search, sorting and pagination."""
    user_id = _authenticate(services, authorization)

    if sort not in SORT_ORDERS:
        raise InputValidationError(f"Invalid sort: {sort}")

    df, total = services.store.list_runs(
        user_id,
        search=q,
        sort=sort,
        page=page,
        page_size=page_size,
    )

    return {"runs": df.to_dicts(), "total": total}
