"""Quote response models (the external contract)."""

from pydantic import BaseModel, Field


class MethodParametersData(BaseModel):
    calldata: str
    value: str


class QuoteData(BaseModel):
    """Rendered projection of a priced route.

    Numeric fields are strings so that no precision is lost in JSON.
    """

    block_number: str = Field(alias="blockNumber")
    estimated_gas_used: str = Field(alias="estimatedGasUsed")
    estimated_gas_used_quote_token: str = Field(alias="estimatedGasUsedQuoteToken")
    estimated_gas_used_usd: str = Field(alias="estimatedGasUsedUSD")
    estimated_gas_used_gas_token: str | None = Field(default=None, alias="estimatedGasUsedGasToken")
    gas_price_wei: str = Field(alias="gasPriceWei")
    method_parameters: MethodParametersData | None = Field(default=None, alias="methodParameters")
    quote: str
    quote_gas_adjusted: str = Field(alias="quoteGasAdjusted")
    route: str
    simulation_status: int | None = Field(default=None, alias="simulationStatus")

    model_config = {"populate_by_name": True}


class QuoteResponse(BaseModel):
    """Either a successful quote or a single error message, never both."""

    success: bool
    data: QuoteData | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: QuoteData) -> "QuoteResponse":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, message: str) -> "QuoteResponse":
        return cls(success=False, error=message)

    def to_json(self) -> dict[str, object]:
        """Serialize with external field names, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
