"""
================================================================================
UI Testing Framework
================================================================================

Playwright-based element engine for BiNDup UI automation.

Components:
    - smart_locator: Element resolution with fallback strategies
    - retry: Retry executor for flaky operations
    - popup_suppressor: Background popup dismissal
    - operation_verifier: Block operation post-condition checks
    - step_logger: Structured step events
    - page_base: Base page object wiring the components together
    - browser_manager: Browser lifecycle management

Author: Automation Team
License: MIT
================================================================================
"""

from .browser_manager import BrowserManager
from .element_actions import ElementActions
from .operation_verifier import (
    OperationKind,
    OperationVerifier,
    VerificationResult,
    generate_block_id,
)
from .page_base import BasePage
from .popup_suppressor import (
    PopupDescriptor,
    PopupSuppressor,
    SuppressorState,
    create_popup_suppressor,
    wait_with_popup_handling,
)
from .retry import RetryExecutor, RetryExhaustedError, execute_with_retry, with_retry
from .selector_strategy import ElementQuery, ResolvedElement, SelectorCandidate
from .settings import EngineSettings
from .smart_locator import ElementNotFoundError, NotFoundError, SmartLocator
from .step_logger import StepEvent, StepLogger, StepStatus

__all__ = [
    "BasePage",
    "BrowserManager",
    "ElementActions",
    "ElementNotFoundError",
    "ElementQuery",
    "EngineSettings",
    "NotFoundError",
    "OperationKind",
    "OperationVerifier",
    "PopupDescriptor",
    "PopupSuppressor",
    "ResolvedElement",
    "RetryExecutor",
    "RetryExhaustedError",
    "SelectorCandidate",
    "SmartLocator",
    "StepEvent",
    "StepLogger",
    "StepStatus",
    "SuppressorState",
    "VerificationResult",
    "create_popup_suppressor",
    "execute_with_retry",
    "generate_block_id",
    "wait_with_popup_handling",
    "with_retry",
]
