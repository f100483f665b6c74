"""Company lookup result types."""

from pydantic import BaseModel, ConfigDict, Field


class CompanyAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str = ""
    postal_code: str = ""
    city: str = ""


class SearchResult(BaseModel):
    """One establishment returned by the company registry."""

    model_config = ConfigDict(frozen=True)

    siren: str = Field(..., description="Legal unit identifier (9 digits)")
    siret: str = Field(..., description="Establishment identifier (14 digits)")
    legal_name: str
    naf_ape: str = ""
    vat_number: str = ""
    address: CompanyAddress = Field(default_factory=CompanyAddress)
