"""
One-time code component - short-lived single-use numeric codes per identity.

Issuing retires any outstanding code for the identity; verifying consumes
the code exactly once. Delivery is the caller's concern.
"""

from .component import (
    SecretsCodeGenerator,
    run,
    run_issue,
    run_purge_expired,
    run_verify,
)
from .models import (
    CodeVerification,
    IssueCodeInput,
    IssueCodeOutput,
    PurgeExpiredInput,
    PurgeExpiredOutput,
    VerifyCodeInput,
    VerifyCodeOutput,
)
from .ports import CodeGeneratorPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_issue",
    "run_verify",
    "run_purge_expired",
    # Models
    "CodeVerification",
    "IssueCodeInput",
    "IssueCodeOutput",
    "PurgeExpiredInput",
    "PurgeExpiredOutput",
    "VerifyCodeInput",
    "VerifyCodeOutput",
    # Ports
    "CodeGeneratorPort",
    "TimePort",
    # Adapters
    "SecretsCodeGenerator",
]
