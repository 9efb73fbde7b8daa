"""Authentication strategies and their outcome contract."""

from .base import (
    CredentialRequest,
    Strategy,
    StrategyActions,
    StrategyNotBoundError,
)
from .lookup import lookup_credential, lookup_field
from .mobile_phone import (
    DEFAULT_BAD_PHONE_NUMBER_MESSAGE,
    DEFAULT_BAD_REQUEST_MESSAGE,
    STRATEGY_NAME,
    MobilePhoneStrategy,
    MobilePhoneStrategyOptions,
    StrategyConfigurationError,
    VerifyCompletion,
)
from .outcome import (
    AuthOutcome,
    Challenge,
    ErrorOutcome,
    FailOutcome,
    SuccessOutcome,
    challenge,
    coerce_challenge,
)

__all__ = [
    "DEFAULT_BAD_PHONE_NUMBER_MESSAGE",
    "DEFAULT_BAD_REQUEST_MESSAGE",
    "STRATEGY_NAME",
    "AuthOutcome",
    "Challenge",
    "CredentialRequest",
    "ErrorOutcome",
    "FailOutcome",
    "MobilePhoneStrategy",
    "MobilePhoneStrategyOptions",
    "Strategy",
    "StrategyActions",
    "StrategyConfigurationError",
    "StrategyNotBoundError",
    "SuccessOutcome",
    "VerifyCompletion",
    "challenge",
    "coerce_challenge",
    "lookup_credential",
    "lookup_field",
]
