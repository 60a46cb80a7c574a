from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductFields(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value


class ProductCreate(ProductFields):
    unit: str = ""
    category: str = ""
    brand: str = ""
    stock: int = Field(0, ge=0)
    status: str = ""
    image: str = ""


class ProductUpdate(ProductFields):
    stock: int = Field(ge=0)
    unit: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    status: Optional[str] = None
    image: Optional[str] = None


class ProductRead(BaseModel):
    id: int
    name: str
    unit: Optional[str] = ""
    category: Optional[str] = ""
    brand: Optional[str] = ""
    stock: int
    status: Optional[str] = ""
    image: Optional[str] = ""

    model_config = ConfigDict(from_attributes=True)


class StockChangeRead(BaseModel):
    id: int
    product_id: int
    old_quantity: int
    new_quantity: int
    change_date: str
    user_info: str

    model_config = ConfigDict(from_attributes=True)


class DeleteResponse(BaseModel):
    message: str


class DuplicateRead(BaseModel):
    name: str
    existing_id: int = Field(alias="existingId")

    model_config = ConfigDict(populate_by_name=True)


class ImportResult(BaseModel):
    added: int = 0
    skipped: int = 0
    duplicates: List[DuplicateRead] = Field(default_factory=list)
