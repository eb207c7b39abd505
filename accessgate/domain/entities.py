from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

RoleType = Literal["admin", "user"]

# --- Collections ---
SECRETS_COLLECTION = "system_settings"
OTP_COLLECTION = "one_time_codes"
MAINTENANCE_COLLECTION = "maintenance"
EMERGENCY_COLLECTION = "emergency_access"
ACCOUNTS_COLLECTION = "admin_accounts"

SYSTEM_LOCK_KEY = "system_lock_pin"
MAINTENANCE_KEY = "maintenance_mode"

# --- Secrets ---

class HashedSecret(BaseModel):
    key: str
    hash: str
    set_by: str
    set_at: datetime
    active: bool = True

# --- One-time codes ---

class OneTimeCode(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    identity: str
    code_hash: str  # sha256(identity:code), never the code itself
    created_at: datetime
    expires_at: datetime
    attempts: int = 0
    consumed: bool = False
    consumed_at: datetime | None = None
    # equals identity while this is the live code; cleared when retired
    live_key: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

# --- Maintenance ---

class MaintenanceConfig(BaseModel):
    enabled: bool = False
    message: str
    estimated_time: str
    allowed_ips: list[str] = Field(default_factory=list)
    allowed_emails: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None
    updated_by: str | None = None

# --- Emergency access ---

class EmergencyToken(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    token_hash: str
    identity: str
    ip_address: str | None = None
    created_at: datetime
    expires_at: datetime
    consumed: bool = False
    consumed_at: datetime | None = None

# --- Accounts ---

class AdminAccount(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    password_hash: str
    roles: list[RoleType] = Field(default_factory=lambda: ["admin"])
    status: Literal["active", "disabled"] = "active"
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles and self.status == "active"
