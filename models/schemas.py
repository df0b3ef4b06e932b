from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    birthday: Optional[str] = None
    gender: Optional[str] = None
    house_number: Optional[str] = None
    street_name: Optional[str] = None
    barangay: Optional[str] = None
    city_municipality: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    user_type: str = "passenger"
    discount_applied: bool = False
    discount_type: Optional[str] = None
    discount_file_path: Optional[str] = None
    drivers_license_path: Optional[str] = None


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    birthday: Optional[str] = None
    gender: Optional[str] = None
    house_number: Optional[str] = None
    street_name: Optional[str] = None
    barangay: Optional[str] = None
    city_municipality: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    user_type: Optional[str] = None
    discount_type: Optional[str] = None
    discount_file_path: Optional[str] = None
    drivers_license_path: Optional[str] = None


class DiscountDecision(BaseModel):
    status: str = Field(..., pattern="^(approved|rejected|pending)$")
    rejection_reason: Optional[str] = None


class VerificationUpdate(BaseModel):
    is_verified: bool


class DiscountApplication(BaseModel):
    discount_type: str
    document_path: str = Field(..., min_length=1)
    document_name: Optional[str] = None


class JeepneyCreate(BaseModel):
    jeepney_number: str = Field(..., min_length=1, max_length=50)
    plate_number: str = Field(..., min_length=1, max_length=20)
    model: Optional[str] = None
    capacity: int = Field(20, ge=1)
    route_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: str = Field("active", pattern="^(active|inactive|maintenance)$")


class JeepneyUpdate(BaseModel):
    plate_number: Optional[str] = Field(None, min_length=1, max_length=20)
    model: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    route_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: Optional[str] = Field(None, pattern="^(active|inactive|maintenance)$")


class DriverReassignment(BaseModel):
    from_jeepney_id: int = Field(..., ge=1)
    to_jeepney_id: int = Field(..., ge=1)
    driver_id: int = Field(..., ge=1)


class RouteCreate(BaseModel):
    route_name: str = Field(..., min_length=1)
    origin: Optional[str] = None
    destination: Optional[str] = None
    status: str = "active"


class RouteUpdate(BaseModel):
    route_name: Optional[str] = Field(None, min_length=1)
    origin: Optional[str] = None
    destination: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")


class CheckpointCreate(BaseModel):
    route_id: int = Field(..., ge=1)
    checkpoint_name: str = Field(..., min_length=1, max_length=255)
    sequence_order: int = Field(..., ge=0)
    fare_from_origin: float = Field(8.00, ge=0)
    is_origin: bool = False
    is_destination: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = "active"


class CheckpointUpdate(BaseModel):
    checkpoint_name: Optional[str] = Field(None, min_length=1, max_length=255)
    sequence_order: Optional[int] = None
    fare_from_origin: Optional[float] = Field(None, ge=0)
    is_origin: Optional[bool] = None
    is_destination: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: Optional[str] = None


class FareEntryUpsert(BaseModel):
    route_id: int = Field(..., ge=1)
    from_checkpoint_id: int = Field(..., ge=1)
    to_checkpoint_id: int = Field(..., ge=1)
    fare_amount: float = Field(..., ge=0)
    is_base_fare: bool = False
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None


class FareMatrixGenerate(BaseModel):
    effective_date: Optional[date] = None
