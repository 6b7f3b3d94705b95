from typing import List

from pydantic import EmailStr, TypeAdapter, ValidationError

from ..localization import InstallationLocalizationService
from ..schemas import DataProviderType, InstallRequest

_email = TypeAdapter(EmailStr)


def validate_install_request(request: InstallRequest, loc: InstallationLocalizationService) -> List[str]:
    errors = []
    if not request.admin_email:
        errors.append(loc.get_resource("AdminEmailRequired"))
    else:
        try:
            _email.validate_python(request.admin_email)
        except ValidationError:
            errors.append(loc.get_resource("AdminEmailInvalid"))
    if not request.admin_password:
        errors.append(loc.get_resource("AdminPasswordRequired"))
    if not request.confirm_password:
        errors.append(loc.get_resource("ConfirmPasswordRequired"))
    elif request.admin_password != request.confirm_password:
        errors.append(loc.get_resource("PasswordsDoNotMatch"))

    if request.connection_string_raw:
        if not request.connection_string:
            errors.append(loc.get_resource("ConnectionStringRequired"))
        return errors

    if not request.database_name:
        errors.append(loc.get_resource("DatabaseNameRequired"))
    if request.data_provider != DataProviderType.SQLITE:
        if not request.server_name:
            errors.append(loc.get_resource("ServerNameRequired"))
        if not request.integrated_security and not request.username:
            errors.append(loc.get_resource("SqlUsernameRequired"))
    return errors
