from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CustomerDetailsPayload(BaseModel):
    name: Optional[str] = ""
    organization_name: Optional[str] = ""
    email: Optional[str] = ""
    address: Optional[str] = ""
    gstin: Optional[str] = ""

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_blank(cls, value):
        return "" if value is None else value


class CustomerDetailsRead(CustomerDetailsPayload):
    model_config = ConfigDict(from_attributes=True)
