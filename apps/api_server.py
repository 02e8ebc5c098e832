"""
FastAPI application server for account access links and IP exclusions.

Provides health checks, invitation/link endpoints for both platforms and
account/campaign IP block endpoints for Google Ads.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic import ValidationError as SettingsError

from core.config import (
    AppSettings,
    GoogleAdsSettings,
    JWTSettings,
    MicrosoftAdsSettings,
    dotenv_refresh_token_writer,
)
from core.errors import AdsAPIError
from core.factory import (
    GoogleAdsServices,
    MicrosoftAdsServices,
    create_google_ads_services,
    create_microsoft_ads_services,
)
from core.models import AccessRole, IpExclusionRule, MutationResult
from security.auth import (
    init_jwt_config,
    JWTConfig,
    Role,
    require_admin,
    require_ops,
    require_viewer,
    create_token,
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Populated during startup
app_state: Dict[str, Any] = {}


def _build_platform(name: str, build):
    """Build one platform's services, leaving it disabled when unconfigured."""
    try:
        services = build()
    except SettingsError as e:
        logger.warning(f"{name} not configured, endpoints disabled: {e.error_count()} missing settings")
        return None
    except AdsAPIError as e:
        logger.error(f"{name} session failed, endpoints disabled: {e}")
        return None

    logger.info(f"{name} services initialized")
    return services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Loads settings, configures logging and creates the platform services.
    """
    settings = AppSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting application...")
    app_state["settings"] = settings

    init_jwt_config(JWTConfig(JWTSettings()))

    app_state["google_ads"] = _build_platform(
        "Google Ads",
        lambda: create_google_ads_services(GoogleAdsSettings()),
    )
    app_state["microsoft_ads"] = _build_platform(
        "Microsoft Advertising",
        lambda: create_microsoft_ads_services(
            MicrosoftAdsSettings(),
            on_refresh_token=dotenv_refresh_token_writer(settings.env_file),
        ),
    )

    logger.info("Application startup complete")

    yield

    app_state.clear()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Ads Access & IP Exclusion API",
    description="Management links and IP exclusion lists across Google Ads and Microsoft Advertising",
    version=VERSION,
    lifespan=lifespan,
)


def get_google_services() -> GoogleAdsServices:
    services = app_state.get("google_ads")
    if services is None:
        raise HTTPException(status_code=503, detail="Google Ads is not configured")
    return services


def get_microsoft_services() -> MicrosoftAdsServices:
    services = app_state.get("microsoft_ads")
    if services is None:
        raise HTTPException(status_code=503, detail="Microsoft Advertising is not configured")
    return services


# Pydantic models for requests/responses

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    components: Dict[str, bool]


class GoogleInvitationRequest(BaseModel):
    """Google Ads user access invitation."""
    email_address: str = Field(..., description="Email address to invite")
    role: AccessRole = Field(AccessRole.ADMIN, description="Access role to grant")


class MicrosoftInvitationRequest(BaseModel):
    """Microsoft Advertising account link invitation."""
    account_number: str = Field(..., description="Account number to link with")


class IpBlockRequest(BaseModel):
    """IP block request."""
    ip_address: str = Field(..., description="IP address to exclude")


class IpBlockResponse(BaseModel):
    """IP exclusion rule."""
    scope: str
    account_id: str
    campaign_id: Optional[str] = None
    ip_address: Optional[str] = None
    resource_name: Optional[str] = None

    @classmethod
    def from_rule(cls, rule: IpExclusionRule) -> "IpBlockResponse":
        return cls(
            scope=rule.scope.value,
            account_id=rule.account_id,
            campaign_id=rule.campaign_id,
            ip_address=rule.ip_address,
            resource_name=rule.resource_name,
        )


class TokenRequest(BaseModel):
    """Token creation request (dev only)."""
    user_id: str = Field(..., description="User ID")
    role: Role = Field(..., description="User role")


def _mutation_response(result: MutationResult) -> Dict[str, Any]:
    return {"status": "success", "resource_names": result.resource_names}


@app.exception_handler(AdsAPIError)
async def ads_api_error_handler(request: Request, exc: AdsAPIError):
    """Log and serialize AdsAPIError exceptions."""
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.error_detail.http_status,
        content=exc.error_detail.to_dict(),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check():
    """Report which platforms have live sessions."""
    components = {
        "google_ads": app_state.get("google_ads") is not None,
        "microsoft_ads": app_state.get("microsoft_ads") is not None,
    }
    return HealthResponse(
        status="healthy" if any(components.values()) else "degraded",
        version=VERSION,
        components=components,
    )


# Google Ads access endpoints

@app.post(
    "/api/google/customers/{customer_id}/invitations",
    tags=["Google Ads"],
    dependencies=[Depends(require_admin)],
)
def send_google_invitation(
    customer_id: str,
    request: GoogleInvitationRequest,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """
    Invite a user to a Google Ads account.

    Requires ADMIN role.
    """
    result = services.access_links.send_invitation(customer_id, request.email_address, request.role)
    return _mutation_response(result)


@app.get(
    "/api/google/customers/{customer_id}/access",
    tags=["Google Ads"],
    dependencies=[Depends(require_viewer)],
)
def check_google_access(
    customer_id: str,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """Check whether the login manager account can manage a customer."""
    can_manage = services.access_links.can_manage_account(services.manager_account_id, customer_id)
    return {
        "manager_account_id": services.manager_account_id,
        "client_account_id": customer_id,
        "can_manage": can_manage,
    }


# Microsoft Advertising access endpoints

@app.post(
    "/api/microsoft/client-links",
    tags=["Microsoft Advertising"],
    dependencies=[Depends(require_admin)],
)
def send_microsoft_invitation(
    request: MicrosoftInvitationRequest,
    services: MicrosoftAdsServices = Depends(get_microsoft_services),
):
    """
    Send an account link invitation from the login manager account.

    Requires ADMIN role.
    """
    result = services.access_links.send_invitation(services.manager_account_id, request.account_number)
    return _mutation_response(result)


@app.get(
    "/api/microsoft/client-links",
    tags=["Microsoft Advertising"],
    dependencies=[Depends(require_viewer)],
)
def list_microsoft_linked_accounts(
    services: MicrosoftAdsServices = Depends(get_microsoft_services),
) -> List[Dict[str, Optional[str]]]:
    """List accounts with an active link to the login manager account."""
    accounts = services.access_links.get_linked_accounts(services.manager_account_id)
    return [
        {"linked_id": account.linked_id, "linked_number": account.linked_number}
        for account in accounts
    ]


@app.get(
    "/api/microsoft/accounts/{account_id}/access",
    tags=["Microsoft Advertising"],
    dependencies=[Depends(require_viewer)],
)
def check_microsoft_access(
    account_id: str,
    services: MicrosoftAdsServices = Depends(get_microsoft_services),
):
    """Check whether the login manager account can manage an account."""
    can_manage = services.access_links.can_manage_account(services.manager_account_id, account_id)
    return {
        "manager_account_id": services.manager_account_id,
        "client_account_id": account_id,
        "can_manage": can_manage,
    }


# Google Ads IP exclusion endpoints

@app.post(
    "/api/google/customers/{customer_id}/ip-blocks",
    tags=["IP Exclusions"],
    status_code=status.HTTP_201_CREATED,
    response_model=IpBlockResponse,
    dependencies=[Depends(require_ops)],
)
def block_account_ip(
    customer_id: str,
    request: IpBlockRequest,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """Block an IP across every campaign of an account. Requires OPS role."""
    rule = services.global_exclusions.block_ip(customer_id, request.ip_address)
    return IpBlockResponse.from_rule(rule)


@app.get(
    "/api/google/customers/{customer_id}/ip-blocks/{ip_address}",
    tags=["IP Exclusions"],
    response_model=List[IpBlockResponse],
    dependencies=[Depends(require_viewer)],
)
def find_account_ip_blocks(
    customer_id: str,
    ip_address: str,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """List account-level rules blocking an IP."""
    rules = services.global_exclusions.find_rules(customer_id, ip_address)
    return [IpBlockResponse.from_rule(rule) for rule in rules]


@app.delete(
    "/api/google/customers/{customer_id}/ip-blocks/{ip_address}",
    tags=["IP Exclusions"],
    dependencies=[Depends(require_ops)],
)
def unblock_account_ip(
    customer_id: str,
    ip_address: str,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """Remove every account-level rule blocking an IP. Requires OPS role."""
    removed = services.global_exclusions.unblock_ip(customer_id, ip_address)
    return {"status": "success", "removed": removed}


@app.post(
    "/api/google/customers/{customer_id}/campaigns/{campaign_id}/ip-blocks",
    tags=["IP Exclusions"],
    status_code=status.HTTP_201_CREATED,
    response_model=IpBlockResponse,
    dependencies=[Depends(require_ops)],
)
def block_campaign_ip(
    customer_id: str,
    campaign_id: str,
    request: IpBlockRequest,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """Block an IP for one campaign. Requires OPS role."""
    rule = services.campaign_exclusions.block_ip(customer_id, request.ip_address, campaign_id)
    return IpBlockResponse.from_rule(rule)


@app.get(
    "/api/google/customers/{customer_id}/campaigns/{campaign_id}/ip-blocks/{ip_address}",
    tags=["IP Exclusions"],
    response_model=List[IpBlockResponse],
    dependencies=[Depends(require_viewer)],
)
def find_campaign_ip_blocks(
    customer_id: str,
    campaign_id: str,
    ip_address: str,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """List campaign rules blocking an IP."""
    rules = services.campaign_exclusions.find_rules(customer_id, ip_address, campaign_id)
    return [IpBlockResponse.from_rule(rule) for rule in rules]


@app.delete(
    "/api/google/customers/{customer_id}/campaigns/{campaign_id}/ip-blocks/{ip_address}",
    tags=["IP Exclusions"],
    dependencies=[Depends(require_ops)],
)
def unblock_campaign_ip(
    customer_id: str,
    campaign_id: str,
    ip_address: str,
    services: GoogleAdsServices = Depends(get_google_services),
):
    """Remove the first campaign rule blocking an IP. Requires OPS role."""
    removed = services.campaign_exclusions.unblock_ip(customer_id, ip_address, campaign_id)
    return {"status": "success", "removed": removed}


# Development/testing endpoints (should be disabled in production)

@app.post("/dev/token", tags=["Development"])
def create_dev_token(request: TokenRequest):
    """
    Create a JWT token for development/testing.

    WARNING: This endpoint is disabled when APP_ENV=production.
    """
    settings: Optional[AppSettings] = app_state.get("settings")
    if settings is not None and settings.is_production:
        raise HTTPException(
            status_code=403,
            detail="Token creation endpoint disabled in production"
        )

    token = create_token(request.user_id, request.role)
    return {
        "token": token,
        "user_id": request.user_id,
        "role": request.role.value,
    }


if __name__ == "__main__":
    import uvicorn

    app_settings = AppSettings()
    uvicorn.run(
        "apps.api_server:app",
        host=app_settings.host,
        port=app_settings.port,
        workers=1,
        reload=not app_settings.is_production,
    )
