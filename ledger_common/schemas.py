from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_CURRENCIES = ("USD", "EUR")

def is_supported_currency(currency: str) -> bool:
    return currency in SUPPORTED_CURRENCIES

class CurrencyField(BaseModel):
    currency: str

    @field_validator("currency")
    @classmethod
    def check_currency(cls, value: str) -> str:
        if not is_supported_currency(value):
            raise ValueError(f"unsupported currency {value!r}, expected one of {', '.join(SUPPORTED_CURRENCIES)}")
        return value

class CreateAccountRequest(CurrencyField):
    owner_name: str = Field(..., min_length=1)

class TransferRequest(CurrencyField):
    from_account_id: int = Field(..., ge=1)
    to_account_id: int = Field(..., ge=1)
    amount: int = Field(..., gt=0)

class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_name: str
    currency: str
    balance: int
    created_at: datetime

class EntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    amount: int
    created_at: datetime

class TransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    from_account_id: int
    to_account_id: int
    amount: int
    created_at: datetime

class TransferTxResponse(BaseModel):
    """Everything a single money move wrote, as returned by POST /transfers."""
    model_config = ConfigDict(from_attributes=True)

    transfer: TransferResponse
    from_account: AccountResponse
    to_account: AccountResponse
    from_entry: EntryResponse
    to_entry: EntryResponse

AccountList = List[AccountResponse]
EntryList = List[EntryResponse]
TransferList = List[TransferResponse]
