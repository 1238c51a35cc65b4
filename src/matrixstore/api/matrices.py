"""Matrix API routes.

Learn: Every route here sits behind the auth gate (applied in
api/__init__.py), so `identity` is always a verified caller and every
query is scoped to identity.user_id.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from matrixstore.auth.dependencies import CurrentIdentity, get_current_user
from matrixstore.db.engine import get_db
from matrixstore.schemas.matrix import (
    MAX_MATRIX_ID,
    MatrixColumn,
    MatrixList,
    MatrixRead,
    SaveMatrixRequest,
    SaveMatrixResponse,
)
from matrixstore.services.matrix_repository import MatrixRepository
from matrixstore.services.matrix_service import MatrixService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> MatrixService:
    return MatrixService(MatrixRepository(db))


@router.post("/save-matrix", response_model=SaveMatrixResponse, status_code=201)
async def save_matrix(
    body: SaveMatrixRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MatrixService = Depends(_svc),
):
    """Store the submitted columns; allocates a matrix id when none is given."""
    matrix_id = await svc.save_matrix(
        user_id=identity.user_id,
        rows=[column.to_entry() for column in body.matrix_data],
        matrix_id=body.matrix_id,
    )
    return SaveMatrixResponse(matrix_id=matrix_id)


@router.get("/get-matrix-list", response_model=MatrixList)
async def list_matrices(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MatrixService = Depends(_svc),
):
    matrix_ids = await svc.list_matrix_ids(identity.user_id)
    return MatrixList(matrix_ids=matrix_ids)


@router.get("/get-matrix/{matrix_id}", response_model=MatrixRead)
async def get_matrix(
    matrix_id: int = Path(..., ge=1, le=MAX_MATRIX_ID),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MatrixService = Depends(_svc),
):
    """Rows of one matrix in insertion order. Unknown ids return no rows."""
    entries = await svc.get_matrix(identity.user_id, matrix_id)
    return MatrixRead(
        matrix_id=matrix_id,
        matrix_data=[MatrixColumn.from_entry(entry) for entry in entries],
    )
