"""
API request/response models
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCredentials(BaseModel):
    """Body of account creation and login"""

    email: EmailStr = Field(..., description="Account email, unique per tenant")
    password: str = Field(..., min_length=6, description="Plain-text password")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "a@x.com", "password": "right-password"}
        }
    )


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="User id")
    email: str = Field(..., description="Account email")


class SessionInfo(BaseModel):
    """One of the caller's sessions; the token itself is never echoed"""

    access: str = Field(..., description="Access tag")
    current: bool = Field(..., description="Whether this is the session making the request")


class WriteCounts(BaseModel):
    """Counts shared by bulk write and bulk delete responses"""

    inserted: int = 0
    deleted: int = 0
    modified: int = 0
    matched: int = 0


class BulkWriteResponse(WriteCounts):
    """
    Bulk write response

    ``_embedded`` lists only documents inserted without identifier; upserted
    existing documents are reflected in ``modified``/``matched``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_embedded": [{"_id": "65f1c0ffee0000000000abcd", "text": "t1", "number": 2000}],
                "inserted": 1,
                "deleted": 0,
                "modified": 0,
                "matched": 0,
            }
        },
    )

    embedded: List[Dict[str, Any]] = Field(default_factory=list, alias="_embedded")


class DocumentListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    embedded: List[Dict[str, Any]] = Field(default_factory=list, alias="_embedded")
    count: int = Field(..., description="Number of documents returned")


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy | degraded")
    version: str = Field(..., description="Service version")
    storage: str = Field(..., description="memory | mongodb")
