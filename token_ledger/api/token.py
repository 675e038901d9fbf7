"""
Token endpoints: metadata, balances, allowances and the four operations
"""

from fastapi import APIRouter, Depends

from .schemas import (
    TransferRequest, TransferFromRequest, ApproveRequest, BurnRequest,
    OperationResponse, TokenInfoResponse, BalanceResponse, AllowanceResponse
)
from .system import TokenSystem, get_token_system, http_error
from ..address import Address
from ..amount import format_units
from ..errors import LedgerError


router = APIRouter()


@router.get("/token", response_model=TokenInfoResponse)
async def get_token_info(system: TokenSystem = Depends(get_token_system)):
    """Get token metadata and current supply"""
    ledger = system.ledger
    return TokenInfoResponse(
        name=ledger.name(),
        symbol=ledger.symbol(),
        decimals=ledger.decimals(),
        total_supply=str(ledger.total_supply()),
        total_supply_formatted=format_units(ledger.total_supply(), ledger.decimals()),
        creator=str(ledger.creator) if ledger.creator else None
    )


@router.get("/token/total-supply")
async def get_total_supply(system: TokenSystem = Depends(get_token_system)):
    """Get current total supply"""
    ledger = system.ledger
    return {
        "total_supply": str(ledger.total_supply()),
        "formatted": format_units(ledger.total_supply(), ledger.decimals())
    }


@router.get("/accounts/{address}/balance", response_model=BalanceResponse)
async def get_balance(address: str, system: TokenSystem = Depends(get_token_system)):
    """Get an account's balance"""
    try:
        account = Address.parse(address)
    except LedgerError as e:
        raise http_error(e)

    balance = system.ledger.balance_of(account)
    return BalanceResponse(
        account=str(account),
        balance=str(balance),
        formatted=format_units(balance, system.ledger.decimals())
    )


@router.get("/accounts/{owner}/allowances/{spender}", response_model=AllowanceResponse)
async def get_allowance(owner: str, spender: str, system: TokenSystem = Depends(get_token_system)):
    """Get the remaining allowance spender holds over owner's balance"""
    try:
        owner_address = Address.parse(owner)
        spender_address = Address.parse(spender)
    except LedgerError as e:
        raise http_error(e)

    return AllowanceResponse(
        owner=str(owner_address),
        spender=str(spender_address),
        allowance=str(system.ledger.allowance(owner_address, spender_address))
    )


@router.post("/transfer", response_model=OperationResponse)
async def transfer(request: TransferRequest, system: TokenSystem = Depends(get_token_system)):
    """Transfer tokens from the caller to another account"""
    try:
        caller, to, value = request.to_args()
        return OperationResponse(success=system.ledger.transfer(caller, to, value))
    except LedgerError as e:
        raise http_error(e)


@router.post("/transfer-from", response_model=OperationResponse)
async def transfer_from(request: TransferFromRequest, system: TokenSystem = Depends(get_token_system)):
    """Spend an allowance to move tokens out of another account"""
    try:
        caller, from_account, to, value = request.to_args()
        return OperationResponse(success=system.ledger.transfer_from(caller, from_account, to, value))
    except LedgerError as e:
        raise http_error(e)


@router.post("/approve", response_model=OperationResponse)
async def approve(request: ApproveRequest, system: TokenSystem = Depends(get_token_system)):
    """Set the allowance a spender holds over the caller's balance"""
    try:
        caller, spender, value = request.to_args()
        return OperationResponse(success=system.ledger.approve(caller, spender, value))
    except LedgerError as e:
        raise http_error(e)


@router.post("/burn", response_model=OperationResponse)
async def burn(request: BurnRequest, system: TokenSystem = Depends(get_token_system)):
    """Destroy tokens from the caller's balance"""
    try:
        caller, value = request.to_args()
        return OperationResponse(success=system.ledger.burn(caller, value))
    except LedgerError as e:
        raise http_error(e)
