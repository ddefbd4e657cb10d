from pydantic import BaseModel, ConfigDict, Field


class TransactionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    state: str = Field(max_length=16)
    amount: str = Field(max_length=32)
    transaction_id: str = Field(alias="transactionId", max_length=255)


class BalanceResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    balance: str


class TransactionResult(BaseModel):
    status: str = "ok"
