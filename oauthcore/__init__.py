"""oauthcore - Client-side OAuth orchestration.

Coordinates PKCE, CSRF state, flow detection, token exchange, persistence
and scheduled refresh around injected storage, HTTP and PKCE adapters.
"""

from __future__ import annotations

from .adapters import (
    HttpAdapter,
    HttpxAdapter,
    MemoryStorageAdapter,
    OAuthAdapters,
    PKCEAdapter,
    SecretsPKCEAdapter,
    StorageAdapter,
)
from .config import (
    FlowConfiguration,
    OAuthConfig,
    OAuthCoreSettings,
    OAuthEndpoints,
    get_settings,
    reload_settings,
)
from .core import (
    FlowRegistry,
    OAuthCore,
    PKCEManager,
    StateValidator,
    TokenManager,
)
from .events import (
    AuthErrorData,
    AuthSuccessData,
    ConfigValidationData,
    EventEmitter,
    LogoutData,
    OAuthEvent,
    TokenExpirationData,
)
from .exceptions import (
    ConfigError,
    ConfigErrorCode,
    ErrorType,
    FlowError,
    FlowErrorCode,
    NetworkError,
    NetworkErrorCode,
    OAuthError,
    TokenError,
    TokenErrorCode,
    ValidationError,
    ValidationErrorCode,
)
from .flows import (
    AuthorizationCodeFlowHandler,
    FlowContext,
    FlowHandler,
    FlowPriority,
    MagicLinkFlowHandler,
    MagicLinkLoginFlowHandler,
    MagicLinkRegisteredFlowHandler,
    MagicLinkVerifyFlowHandler,
    SimpleFlowHandler,
    create_flow_handler,
)
from .params import parse_params
from .scheduler import TokenScheduler
from .state import AuthStatusManager, LoadingManager
from .types import (
    AuthorizationRequest,
    AuthStatus,
    FlowDetectionResult,
    HttpResponse,
    OAuthResult,
    OAuthTokens,
    PKCEChallenge,
)
from .validation import ConfigValidationResult, ConfigValidator


__version__ = "0.1.0"

__all__ = [
    "AuthErrorData",
    "AuthStatus",
    "AuthStatusManager",
    "AuthSuccessData",
    "AuthorizationCodeFlowHandler",
    "AuthorizationRequest",
    "ConfigError",
    "ConfigErrorCode",
    "ConfigValidationData",
    "ConfigValidationResult",
    "ConfigValidator",
    "ErrorType",
    "EventEmitter",
    "FlowConfiguration",
    "FlowContext",
    "FlowDetectionResult",
    "FlowError",
    "FlowErrorCode",
    "FlowHandler",
    "FlowPriority",
    "FlowRegistry",
    "HttpAdapter",
    "HttpResponse",
    "HttpxAdapter",
    "LoadingManager",
    "LogoutData",
    "MagicLinkFlowHandler",
    "MagicLinkLoginFlowHandler",
    "MagicLinkRegisteredFlowHandler",
    "MagicLinkVerifyFlowHandler",
    "MemoryStorageAdapter",
    "NetworkError",
    "NetworkErrorCode",
    "OAuthAdapters",
    "OAuthConfig",
    "OAuthCore",
    "OAuthCoreSettings",
    "OAuthEndpoints",
    "OAuthError",
    "OAuthEvent",
    "OAuthResult",
    "OAuthTokens",
    "PKCEAdapter",
    "PKCEChallenge",
    "PKCEManager",
    "SecretsPKCEAdapter",
    "SimpleFlowHandler",
    "StateValidator",
    "StorageAdapter",
    "TokenError",
    "TokenErrorCode",
    "TokenExpirationData",
    "TokenManager",
    "TokenScheduler",
    "ValidationError",
    "ValidationErrorCode",
    "__version__",
    "create_flow_handler",
    "get_settings",
    "parse_params",
    "reload_settings",
]
