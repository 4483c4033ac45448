# Filename: dropdrive/models.py
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone
from decimal import Decimal
from .config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    # ids come from the external directory, never generated here
    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    full_name: str = Field(max_length=100)
    department: Optional[str] = Field(default=None, max_length=100)
    hashed_password: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    # quota info (megabytes, 4 decimal places)
    total_storage_mb: Decimal = Field(default=settings.default_total_storage_mb, max_digits=18, decimal_places=4)
    used_storage_mb: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=4)


class Folder(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str
    # None means the folder sits directly in the user root
    parent_folder_id: Optional[int] = Field(default=None, foreign_key="folder.id", index=True)
    path: str = Field(max_length=500, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    is_deleted: bool = Field(default=False, index=True)


class FileItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str  # without extension
    type: str = ""  # extension without the dot, lower-case
    size_mb: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=4)
    folder_id: Optional[int] = Field(default=None, foreign_key="folder.id", index=True)
    path: str = Field(index=True)  # physical path including extension
    uploaded_at: datetime = Field(default_factory=utcnow)
    is_deleted: bool = Field(default=False, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.name}.{self.type}" if self.type else self.name
