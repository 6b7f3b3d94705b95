import enum
from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


class DataProviderType(str, enum.Enum):
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"


class DataSettings(BaseModel):
    data_provider: Optional[DataProviderType] = None
    connection_string: str = ""

    @property
    def is_valid(self) -> bool:
        return self.data_provider is not None and bool(self.connection_string)


class InstallRequest(BaseModel):
    admin_email: str = ""
    admin_password: str = ""
    confirm_password: str = ""
    data_provider: DataProviderType = DataProviderType.POSTGRESQL
    connection_string_raw: bool = False
    connection_string: Optional[str] = None
    server_name: Optional[str] = None
    database_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    integrated_security: bool = False
    collation: Optional[str] = None
    country: Optional[str] = None  # culture tag, e.g. "de-DE"
    language: Optional[str] = None
    create_database_if_not_exists: bool = False
    install_sample_data: bool = False


# Fields never echoed back when the form is redisplayed
SECRET_FIELDS = {"admin_password", "confirm_password", "password"}


def mask_connection_string(value: Optional[str]) -> Optional[str]:
    """Hide the password of a URL connection string; drop strings that are not URLs."""
    if not value:
        return value
    try:
        url = make_url(value)
    except (ArgumentError, ValueError):
        return None
    if url.password is None:
        return value
    return url.render_as_string(hide_password=True)


class SelectItem(BaseModel):
    value: str
    text: str
    selected: bool = False


class InstallForm(BaseModel):
    admin_email: str = "admin@yourStore.com"
    data_provider: DataProviderType = DataProviderType.POSTGRESQL
    connection_string_raw: bool = False
    connection_string: Optional[str] = None
    server_name: Optional[str] = None
    database_name: Optional[str] = None
    username: Optional[str] = None
    integrated_security: bool = False
    collation: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None
    create_database_if_not_exists: bool = False
    install_sample_data: bool = False
    disable_sample_data_option: bool = False
    install_regional_resources: bool = True
    restart_url: Optional[str] = None
    available_languages: List[SelectItem] = []
    available_data_providers: List[SelectItem] = []
    available_countries: List[SelectItem] = []
    errors: List[str] = []

    @classmethod
    def from_request(cls, request: InstallRequest, **extra) -> "InstallForm":
        values = request.model_dump(exclude=SECRET_FIELDS)
        values["connection_string"] = mask_connection_string(values.get("connection_string"))
        values.update(extra)
        return cls(**values)


class InstallResult(BaseModel):
    status: str = "installed"
    restart_url: str


class LanguagePackInfo(BaseModel):
    culture: str = ""
    progress: int = 0
    download_link: str = ""


class InstallationCompletedResponse(BaseModel):
    message: str = ""
    language_pack: LanguagePackInfo = LanguagePackInfo()
