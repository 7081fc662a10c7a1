"""
Pydantic models for catalog entities and user accounts.
Documents are stored with camelCase keys; Python code uses snake_case attributes.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# bcrypt only considers the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72


class Role(str, Enum):
    """Account role carried in tokens and stored on the user document."""
    STANDARD = "standard"
    ADMINISTRATOR = "administrator"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Stored values that are missing or unknown count as STANDARD."""
        try:
            return cls(value)
        except ValueError:
            return cls.STANDARD


class CatalogModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase document keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self, partial: bool = False) -> Dict[str, Any]:
        """
        Dump to a MongoDB document.

        Args:
            partial: Only include fields the caller actually supplied

        Returns:
            Dictionary keyed by document (camelCase) names
        """
        return self.model_dump(by_alias=True, exclude_unset=partial, exclude_none=partial)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def _validate_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid object id")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_validate_object_id)]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserRegistration(CatalogModel):
    """Scalar fields accepted by the registration form."""
    first_name: str = Field(..., min_length=1, description="First name")
    last_name: str = Field(..., min_length=1, description="Last name")
    username: str = Field(..., min_length=1, description="Unique username")
    country_code: str = Field(..., min_length=1, description="Phone country code")
    phone: str = Field(..., min_length=1, description="Phone number")
    email: str = Field(..., min_length=3, description="Unique email address")
    password: str = Field(..., min_length=1, description="Plain-text password")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Require a single @ with text on both sides."""
        local, sep, domain = v.partition("@")
        if not sep or not local or not domain or "@" in domain:
            raise ValueError('email must be a valid address')
        return v.strip().lower()

    @field_validator('password')
    @classmethod
    def validate_password_length(cls, v):
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f'password must be at most {MAX_PASSWORD_BYTES} bytes')
        return v


class LoginRequest(BaseModel):
    """JSON body for the login endpoint."""
    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Plain-text password")


class UserOut(CatalogModel):
    """User as returned by the API. The password hash is never exposed."""
    id: str = Field(..., alias="_id")
    first_name: str
    last_name: str
    username: str
    country_code: str
    phone: str
    email: str
    image: Optional[str] = None
    is_verified: int = 0
    active: bool = True
    role: Role = Role.STANDARD
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('role', mode='before')
    @classmethod
    def normalize_role(cls, v):
        return Role.parse(v)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class CategoryInput(CatalogModel):
    name: str = Field(..., min_length=1)
    description: str = ""


class CategoryPatch(CatalogModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class CategoryOut(CatalogModel):
    id: str = Field(..., alias="_id")
    name: str
    description: str = ""
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubCategoryInput(CatalogModel):
    name: str = Field(..., min_length=1)
    category: ObjectIdStr = Field(..., description="Parent category id")
    description: str = ""
    is_active: bool = True


class SubCategoryPatch(CatalogModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[ObjectIdStr] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SubCategoryOut(CatalogModel):
    id: str = Field(..., alias="_id")
    name: str
    description: str = ""
    image: Optional[str] = None
    # Populated parent when it still exists, otherwise the bare id
    category: Union[CategoryOut, str, None] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------

LINK_FIELDS = ("facebook_url", "instagram_url", "youtube_url", "website_url")


class AuthorLinks(CatalogModel):
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    youtube_url: Optional[str] = None
    website_url: Optional[str] = None


class AuthorInput(CatalogModel):
    """Author form fields. Social links arrive flat and are stored nested."""
    name: str = Field(..., min_length=1)
    since_year: int = Field(..., ge=0, le=9999)
    description: str = Field(..., min_length=1)
    is_active: bool = True
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    youtube_url: Optional[str] = None
    website_url: Optional[str] = None

    def to_document(self, partial: bool = False) -> Dict[str, Any]:
        document = super().to_document(partial)
        links = AuthorLinks(**{name: getattr(self, name) for name in LINK_FIELDS})
        for name in LINK_FIELDS:
            document.pop(to_camel(name), None)
        document["links"] = links.to_document()
        return document


class AuthorPatch(CatalogModel):
    name: Optional[str] = Field(None, min_length=1)
    since_year: Optional[int] = Field(None, ge=0, le=9999)
    description: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    youtube_url: Optional[str] = None
    website_url: Optional[str] = None

    def to_document(self, partial: bool = True) -> Dict[str, Any]:
        document = super().to_document(partial)
        # Individual links are set with dotted paths so the others survive
        for name in LINK_FIELDS:
            key = to_camel(name)
            if key in document:
                document[f"links.{key}"] = document.pop(key)
        return document


class AuthorOut(CatalogModel):
    id: str = Field(..., alias="_id")
    name: str
    since_year: int
    description: str
    image: Optional[str] = None
    is_active: bool = True
    links: Optional[AuthorLinks] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Currencies
# ---------------------------------------------------------------------------

class CurrencyCreate(CatalogModel):
    name: str = Field(..., min_length=1)


class CurrencyOut(CatalogModel):
    id: str = Field(..., alias="_id")
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
