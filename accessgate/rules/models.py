from pydantic import BaseModel, Field


class SystemLockRules(BaseModel):
    pin_pattern: str = r"^\d{4,6}$"
    hash_time_cost: int = Field(default=3, ge=1)
    hash_memory_cost_kib: int = Field(default=65536, ge=8)
    hash_parallelism: int = Field(default=4, ge=1)
    hash_pool_workers: int = Field(default=2, ge=1)

class OtpRules(BaseModel):
    ttl_seconds: int = 300
    min_reissue_seconds: int = 60
    max_attempts: int = 3
    digits: int = 6

class MaintenanceRules(BaseModel):
    default_message: str = (
        "We're making things better! Capsera is currently under maintenance."
    )
    default_estimated_time: str = "2-3 hours"
    baseline_allowed_ips: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "::1", "localhost"]
    )
    baseline_allowed_emails: list[str] = Field(default_factory=list)
    cache_ttl_seconds: float = Field(default=5.0, ge=0, le=10)
    exempt_path_prefixes: list[str] = Field(
        default_factory=lambda: [
            "/api/admin",
            "/admin",
            "/maintenance",
            "/api/maintenance",
            "/health",
        ]
    )

class EmergencyAccessRules(BaseModel):
    ttl_hours: int = 24
    token_bytes: int = Field(default=32, ge=16)
    max_active_per_email: int = 5
    max_issued_per_ip_per_hour: int = 10
    bypass_cookie_minutes: int = 12 * 60

class RateLimitWindow(BaseModel):
    window_seconds: int
    max_requests: int

class RateLimitRules(BaseModel):
    anonymous: RateLimitWindow
    reaper_interval_seconds: int = 300
    eviction_grace_seconds: int = 300
    admin_cache_seconds: int = 60

class TimeoutRules(BaseModel):
    store_seconds: float = 5.0
    email_seconds: float = 10.0

class DebugRules(BaseModel):
    expose_codes: bool = False

class Rules(BaseModel):
    system_lock: SystemLockRules = Field(default_factory=SystemLockRules)
    otp: OtpRules = Field(default_factory=OtpRules)
    maintenance: MaintenanceRules = Field(default_factory=MaintenanceRules)
    emergency_access: EmergencyAccessRules = Field(default_factory=EmergencyAccessRules)
    rate_limits: RateLimitRules
    timeouts: TimeoutRules = Field(default_factory=TimeoutRules)
    debug: DebugRules = Field(default_factory=DebugRules)
