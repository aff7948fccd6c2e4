"""Pydantic request/response models for the CertLedger API.

Field names are snake_case in Python and camelCase on the wire, matching
what the web frontend sends and reads.
"""

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate_wallet(v: str) -> str:
    if not _WALLET_RE.match(v):
        raise ValueError("wallet must be a 0x-prefixed 40 hex character address")
    return v


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class _RegistrationBase(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=40)
    wallet_address: str | None = None

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet(cls, v: str | None) -> str | None:
        return _validate_wallet(v) if v is not None else v


class RegistrarRegistration(_RegistrationBase):
    role: Literal["registrar"]
    full_name: str = Field(..., min_length=1, max_length=200)
    department: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1, max_length=100)

    def profile(self) -> dict[str, Any]:
        return {"departmentName": self.department, "employeeId": self.username, "phoneNumber": self.phone}


class InsurerRegistration(_RegistrationBase):
    role: Literal["insurer"]
    company: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1, max_length=100)
    org_address: str | None = Field(default=None, max_length=300)

    def profile(self) -> dict[str, Any]:
        return {
            "companyName": self.company,
            "licenseNumber": self.username,
            "contactPerson": self.full_name,
            "companyAddress": self.org_address,
        }


class ClaimantRegistration(_RegistrationBase):
    role: Literal["claimant"]
    address: str | None = Field(default=None, max_length=300)
    relationship_to_deceased: str = Field(default="Self", max_length=100)

    def profile(self) -> dict[str, Any]:
        return {
            "relationshipToDeceased": self.relationship_to_deceased,
            "phoneNumber": self.phone,
            "address": self.address,
        }


RegisterRequest = Annotated[
    Union[RegistrarRegistration, InsurerRegistration, ClaimantRegistration],
    Field(discriminator="role"),
]


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserSummary(CamelModel):
    id: str
    name: str
    email: str
    role: str


class RegisterResponse(CamelModel):
    message: str = "Registration successful"
    user: UserSummary


class LoginResponse(CamelModel):
    token: str
    user: UserSummary


class RoleRequestCreate(CamelModel):
    requested_role: Literal["insurer", "claimant", "registrar"]
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Registrar
# ---------------------------------------------------------------------------

class UploadResponse(CamelModel):
    id: str
    cid: str
    hash: str
    full_name: str
    wallet: str
    timestamp: int
    message: str = "Certificate uploaded to IPFS successfully. Ready for blockchain registration."
    next_step: str = "Connect your Metamask wallet to register this certificate on the blockchain"


class RegisterOnChainRequest(CamelModel):
    cid: str = Field(..., min_length=1, max_length=200)
    hash: str = Field(..., min_length=64, max_length=66)
    full_name: str = Field(..., min_length=1, max_length=200)
    wallet: str

    @field_validator("wallet")
    @classmethod
    def validate_wallet(cls, v: str) -> str:
        return _validate_wallet(v)


class RegisterOnChainResponse(CamelModel):
    cid: str
    hash: str
    full_name: str
    wallet: str
    registry_address: str
    rpc_url: str
    timestamp: int
    message: str = (
        "Certificate ready for blockchain registration. "
        "Please connect your Metamask wallet to complete the process."
    )


class UpdateCertificateStatusRequest(CamelModel):
    cid: str = Field(..., min_length=1, max_length=200)
    tx_hash: str = Field(..., pattern=r"^0x[0-9a-fA-F]{64}$")


# ---------------------------------------------------------------------------
# Insurer verification
# ---------------------------------------------------------------------------

class OnchainData(CamelModel):
    exists: bool = False
    ipfs_cid: str = ""
    registrar: str = ""
    timestamp: int = 0


class CandidateResult(CamelModel):
    hash: str
    formatted_hash: str
    exists: bool
    ipfs_cid: str = ""
    registrar: str = ""
    timestamp: int = 0
    error: str | None = None
    sources: list[str] = []
    reasons: list[str] = []


class VerifyResponse(CamelModel):
    verified: bool
    local_hash: str | None
    matched_hash: str | None
    chosen_source: str
    onchain_data: OnchainData
    candidate_results: list[CandidateResult] = []
    db_matches: int = 0
    message: str


class CertificateLookupResponse(CamelModel):
    hash: str
    formatted_hash: str
    onchain_data: OnchainData
    error: str | None = None
    certificate: dict | None = None


# ---------------------------------------------------------------------------
# Claimant
# ---------------------------------------------------------------------------

class ClaimSubmitRequest(CamelModel):
    certificate_hash: str = Field(..., min_length=64, max_length=66)
    policy_id: str = Field(..., min_length=1, max_length=100)
    deceased_name: str | None = Field(default=None, max_length=200)


class ClaimSubmitResponse(CamelModel):
    id: str
    status: str
    verified: bool = False


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthResponse(CamelModel):
    status: str = "healthy"
    store_backend: str = "memory"
    store_connected: bool = False
    ledger_configured: bool = False
    ledger_connected: bool = False
    pinning_configured: bool = False
