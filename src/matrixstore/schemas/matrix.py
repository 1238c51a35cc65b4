"""Pydantic schemas for matrix save/list/read.

Learn: The wire format is camelCase (`matrixId`, `columnName`) while the
Python side is snake_case. `alias` handles input, FastAPI serializes
responses by alias, and populate_by_name lets code build them either way.
"""

from typing import Optional

from pydantic import BaseModel, Field

from matrixstore.services.matrix_repository import MatrixEntry

# matrix_id is a 32-bit signed INTEGER column
MAX_MATRIX_ID = 2**31 - 1


class MatrixColumn(BaseModel):
    column_name: str = Field(..., alias="columnName", min_length=1, max_length=255)
    transformation: str

    model_config = {"populate_by_name": True}

    def to_entry(self) -> MatrixEntry:
        return MatrixEntry(self.column_name, self.transformation)

    @classmethod
    def from_entry(cls, entry: MatrixEntry) -> "MatrixColumn":
        return cls(column_name=entry.column_name, transformation=entry.transformation)


class SaveMatrixRequest(BaseModel):
    matrix_id: Optional[int] = Field(None, alias="matrixId", ge=1, le=MAX_MATRIX_ID)
    matrix_data: list[MatrixColumn] = Field(..., alias="matrixData", min_length=1)

    model_config = {"populate_by_name": True}


class SaveMatrixResponse(BaseModel):
    message: str = "Matrix saved successfully"
    matrix_id: int = Field(..., alias="matrixId")

    model_config = {"populate_by_name": True}


class MatrixList(BaseModel):
    matrix_ids: list[int] = Field(..., alias="matrixIds")

    model_config = {"populate_by_name": True}


class MatrixRead(BaseModel):
    matrix_id: int = Field(..., alias="matrixId")
    matrix_data: list[MatrixColumn] = Field(..., alias="matrixData")

    model_config = {"populate_by_name": True}
