from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ..installation.orchestrator import InstallationOrchestrator, InstallationOutcome
from ..localization import LANGUAGE_COOKIE, InstallationLocalizationService
from ..schemas import DataProviderType, InstallForm, InstallRequest, InstallResult, SelectItem
from ..services.regional import available_countries

router = APIRouter(prefix="/install", tags=["install"])


# ── dependencies ─────────────────────────────────────────────────────────────
def get_localization(request: Request) -> InstallationLocalizationService:
    services = request.app.state.services
    return InstallationLocalizationService(
        services.static_cache,
        language_code=request.cookies.get(LANGUAGE_COOKIE),
        accept_language=request.headers.get("accept-language"),
    )


def get_orchestrator(request: Request,
                     loc: InstallationLocalizationService = Depends(get_localization)) -> InstallationOrchestrator:
    return request.app.state.services.orchestrator(loc)


# ── form helpers ─────────────────────────────────────────────────────────────
def _prepare_form(form: InstallForm, request: Request, loc: InstallationLocalizationService) -> InstallForm:
    config = request.app.state.services.config.installation
    form.disable_sample_data_option = config.disable_sample_data
    form.install_regional_resources = config.install_regional_resources

    current = loc.get_current_language()
    form.available_languages = [
        SelectItem(value=str(request.url_for("change_language").include_query_params(language=lang.code)),
                   text=lang.name, selected=(lang.code == current.code))
        for lang in loc.get_available_languages()
    ]
    form.available_data_providers = [
        SelectItem(value=kind.value, text=name, selected=(kind == form.data_provider))
        for kind, name in sorted(loc.get_available_provider_types().items(), key=lambda item: item[1])
    ]
    if form.install_regional_resources:
        form.available_countries = available_countries(
            request.app.state.services.static_cache,
            display_language=current.code,
            selected=form.country or loc.get_browser_culture(),
        )
    return form


def _home(outcome: InstallationOutcome) -> RedirectResponse:
    return RedirectResponse(outcome.redirect_url or "/", status_code=302)


# ── endpoints ────────────────────────────────────────────────────────────────
@router.get("", response_model=InstallForm)
def index(request: Request, loc: InstallationLocalizationService = Depends(get_localization),
          orchestrator: InstallationOrchestrator = Depends(get_orchestrator)):
    if orchestrator.is_installed():
        return RedirectResponse("/", status_code=302)
    config = request.app.state.services.config.installation
    form = InstallForm(data_provider=DataProviderType(config.default_data_provider))
    return _prepare_form(form, request, loc)


@router.post("")
def submit(body: InstallRequest, request: Request,
           loc: InstallationLocalizationService = Depends(get_localization),
           orchestrator: InstallationOrchestrator = Depends(get_orchestrator)):
    outcome = orchestrator.submit(body)
    if outcome.already_installed:
        return _home(outcome)
    if outcome.succeeded:
        return InstallResult(restart_url=outcome.redirect_url)
    form = _prepare_form(InstallForm.from_request(body, errors=outcome.errors), request, loc)
    return JSONResponse(status_code=400, content=form.model_dump(mode="json"))


@router.get("/change-language", name="change_language")
def change_language(language: Optional[str] = None,
                    loc: InstallationLocalizationService = Depends(get_localization),
                    orchestrator: InstallationOrchestrator = Depends(get_orchestrator)):
    outcome = orchestrator.change_language(language or "")
    if outcome.already_installed:
        return _home(outcome)
    response = RedirectResponse(outcome.redirect_url, status_code=302)
    response.set_cookie(LANGUAGE_COOKIE, loc.get_current_language().code, httponly=True, samesite="lax")
    return response


@router.post("/restart", response_model=InstallForm)
def restart_install(request: Request, loc: InstallationLocalizationService = Depends(get_localization),
                    orchestrator: InstallationOrchestrator = Depends(get_orchestrator)):
    outcome = orchestrator.restart_install()
    if outcome.already_installed:
        return _home(outcome)
    return _prepare_form(InstallForm(restart_url=outcome.redirect_url), request, loc)


@router.get("/restart-application")
def restart_application(orchestrator: InstallationOrchestrator = Depends(get_orchestrator)):
    outcome = orchestrator.restart_application()
    if outcome.already_installed:
        return _home(outcome)
    return Response(status_code=200)
