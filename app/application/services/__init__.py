"""Application services: repairs, users, privileged identity functions, export."""

from app.application.services.csv_export import CsvExport, export_repairs_csv
from app.application.services.identity_functions import (
    IdentityFunctions,
    build_session,
    require_admin,
)
from app.application.services.photo_service import PhotoService, PhotoUpload
from app.application.services.repair_service import RepairService
from app.application.services.sorting import sort_repairs, sort_users
from app.application.services.user_service import UserService

__all__ = [
    "CsvExport",
    "IdentityFunctions",
    "PhotoService",
    "PhotoUpload",
    "RepairService",
    "UserService",
    "build_session",
    "export_repairs_csv",
    "require_admin",
    "sort_repairs",
    "sort_users",
]
