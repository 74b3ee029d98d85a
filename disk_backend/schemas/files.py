from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeleteFileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath", min_length=1, max_length=1024)


class UploadResult(BaseModel):
    url: str
    path: str
    name: str
    ext: Optional[str] = None


class DeleteResult(BaseModel):
    message: str
    success: bool
