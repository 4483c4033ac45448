# Filename: dropdrive/schemas.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    user_id: int
    password: str
    remember: bool = False


class UserOut(BaseModel):
    id: int
    full_name: str
    department: Optional[str]
    created_at: datetime
    used_storage_mb: Decimal
    total_storage_mb: Decimal

    model_config = ConfigDict(from_attributes=True)


class FileOut(BaseModel):
    id: int
    name: str
    type: str
    full_name: str
    size_mb: Decimal
    folder_id: Optional[int]
    uploaded_at: datetime
    is_deleted: bool

    model_config = ConfigDict(from_attributes=True)


class FolderCreate(BaseModel):
    name: str
    parent_folder_id: Optional[int] = None


class FileCreate(BaseModel):
    name: str
    parent_folder_id: Optional[int] = None


class RenameRequest(BaseModel):
    new_name: str


class FolderOut(BaseModel):
    id: int
    name: str
    parent_folder_id: Optional[int]
    created_at: datetime
    is_deleted: bool

    model_config = ConfigDict(from_attributes=True)


class DriveListing(BaseModel):
    folders: List[FolderOut]
    files: List[FileOut]

    model_config = ConfigDict(from_attributes=True)


class UploadFailureOut(BaseModel):
    name: str
    reason: str

    model_config = ConfigDict(from_attributes=True)


class UploadReportOut(BaseModel):
    folders: List[FolderOut]
    files: List[FileOut]
    failures: List[UploadFailureOut]

    model_config = ConfigDict(from_attributes=True)


class RecoverOut(BaseModel):
    id: int
    name: str
    message: str


class FolderDetailsOut(BaseModel):
    folder: FolderOut
    file_count: int
    folder_count: int
    descendant_file_count: int
    descendant_folder_count: int
    total_size_mb: Decimal

    model_config = ConfigDict(from_attributes=True)


class PurgeOut(BaseModel):
    freed_mb: Decimal
    folders: int = 0
    files: int = 0


class UsageOut(BaseModel):
    used_storage_mb: Decimal
    total_storage_mb: Decimal
    available_storage_mb: Decimal


class MessageOut(BaseModel):
    status: str = "ok"
    message: Optional[str] = None
