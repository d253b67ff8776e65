"""Deposit address provisioning (admin only)."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paydail.api.deps import get_wallet_provider
from paydail.config import ProviderConfigError, Settings, get_settings
from paydail.ledger.database import get_session_factory, unit_of_work
from paydail.ledger.models import ADDRESS_COLUMNS
from paydail.ledger.repository import LedgerRepository
from paydail.providers.base import ProviderAdapter, ProviderError

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateAddressRequest(BaseModel):
    """Request for a user's deposit address on one asset/network."""

    user_id: int = Field(..., gt=0, description="Internal user ID")
    asset: str = Field(..., min_length=3, max_length=10, description="USDT, BTC, ETH or BNB")
    network: str = Field(..., min_length=3, max_length=10, description="TRC20, BTC, ETH or BEP20")

    @field_validator("asset", "network")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper().strip()


class AddressResponse(BaseModel):
    address: str
    saved: bool
    reused: bool


@router.post("/wallet/generate-address", response_model=AddressResponse)
async def generate_address(
    request: GenerateAddressRequest,
    x_admin_token: str = Header(None),
    settings: Settings = Depends(get_settings),
    provider: ProviderAdapter = Depends(get_wallet_provider),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Return the user's address for an asset/network, provisioning it if needed."""
    if not settings.admin_token or x_admin_token != settings.admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")

    column = ADDRESS_COLUMNS.get((request.asset, request.network))
    if column is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported asset/network",
        )

    async with unit_of_work(session_factory) as session:
        user = await LedgerRepository(session).get_user(request.user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User {request.user_id} not found",
            )
        existing = getattr(user, column)

    if existing:
        return AddressResponse(address=existing, saved=True, reused=True)

    try:
        created = await provider.create_deposit_address(request.user_id, request.asset)
    except ProviderError as e:
        logger.error(
            f"Address generation failed for {request.asset}/{request.network}: "
            f"{e} status={e.status_code} data={e.data}"
        )
        return JSONResponse(
            {"error": "Failed to generate address", "code": "BITGO_ERROR", "status": e.status_code},
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
    except ProviderConfigError as e:
        logger.error(f"Address generation misconfigured for {request.asset}: {e}")
        return JSONResponse(
            {"error": "Failed to generate address", "code": "CONFIG_ERROR"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    async with unit_of_work(session_factory) as session:
        await LedgerRepository(session).set_deposit_address(
            request.user_id, request.asset, request.network, created.address
        )

    logger.info(f"Provisioned {request.asset}/{request.network} address for user {request.user_id}")
    return AddressResponse(address=created.address, saved=True, reused=False)
