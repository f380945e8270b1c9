'''
API endpoints for teacher earnings: payout requests and the wallet.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import finance as finance_models
from ..services.security import verify_token_and_get_user
from ..services.payout_service import PayoutService
from ..services.ledger_service import PaymentLedgerService

class PayoutsAPI:
    """Endpoints for payout requests."""
    def __init__(self):
        self.router = APIRouter(
            prefix="/payouts",
            tags=["Payouts"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.request_payout,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.PayoutRequestRead)
        self.router.add_api_route(
                "/",
                self.list_payouts,
                methods=["GET"],
                response_model=list[finance_models.PayoutRequestRead])

    async def request_payout(
        self,
        payout_data: finance_models.PayoutRequestCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payout_service: Annotated[PayoutService, Depends(PayoutService)]
    ) -> Any:
        """
        Requests a withdrawal. Restricted to Teachers. Amounts below the
        method's minimum are rejected with 400.
        """
        return await payout_service.request_payout(current_user, payout_data.amount, payout_data.method)

    async def list_payouts(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payout_service: Annotated[PayoutService, Depends(PayoutService)]
    ) -> list[Any]:
        return await payout_service.list_payouts(current_user)


class WalletAPI:
    """Endpoints for the current teacher's wallet."""
    def __init__(self):
        self.router = APIRouter(
            prefix="/wallet",
            tags=["Wallet"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.get_wallet,
                methods=["GET"],
                response_model=finance_models.WalletRead)

    async def get_wallet(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        ledger_service: Annotated[PaymentLedgerService, Depends(PaymentLedgerService)]
    ) -> Any:
        return await ledger_service.get_wallet(current_user)


# Instantiate and combine routers
payouts_api = PayoutsAPI()
wallet_api = WalletAPI()

router = APIRouter()
router.include_router(payouts_api.router)
router.include_router(wallet_api.router)
