"""
================================================================================
Operation Verifier
================================================================================

Post-condition checks for block operations in the BiNDup page editor.

BiNDup exposes no stable per-block id to tests, so verification is
count-based and identity-free:

    add        target found AND block count > 0
    duplicate  block count > 1 (cardinality, not identity)
    move       target still exists; position_changed is assumed True
               because block order cannot be read back reliably. This is a
               known approximation, not a guarantee.
    delete     target absent
    exists     target present

`verify` never raises; internal faults come back as success=False with a
diagnostic message.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import allure
from loguru import logger
from playwright.async_api import Locator, Page

from .step_logger import StepLogger


GENERATED_ID_PREFIX = "corner-block-"

# Generic block containers, counted as max() over the cascade
BLOCK_COUNT_SELECTORS = [
    ".corner-block",
    ".block-item",
    '[class*="corner"][class*="block"]',
    '[data-testid*="block"]',
    ".content-block",
]

# Lookup cascade for a block that has no usable id
GENERIC_BLOCK_SELECTORS = [
    ".corner-block",
    '[class*="corner"][class*="block"]',
    ".block-item",
    '[data-testid*="block"]',
    ".content-block",
    ".page-block",
]


class OperationKind(str, Enum):
    ADD = "add"
    DUPLICATE = "duplicate"
    MOVE = "move"
    DELETE = "delete"
    EXISTS = "exists"


@dataclass
class VerificationResult:
    operation_kind: str
    success: bool
    target_exists: bool
    element_count: int
    message: str
    position_changed: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def generate_block_id() -> str:
    """Client-side id for a block the test just created (never present in the DOM)."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{GENERATED_ID_PREFIX}{int(time.time() * 1000)}-{suffix}"


def _id_selectors(target_id: str) -> List[str]:
    quoted = target_id.replace("\\", "\\\\").replace('"', '\\"')
    return [
        f'[data-block-id="{quoted}"]',
        f'[id="{quoted}"]',
    ]


class OperationVerifier:
    """
    Verifies the effect of a block operation from live DOM counts.

    Usage:
        >>> verifier = OperationVerifier(page)
        >>> result = await verifier.verify("duplicate", block_id)
        >>> assert result.success, result.message
    """

    def __init__(
        self,
        page: Page,
        count_selectors: Optional[List[str]] = None,
        block_selectors: Optional[List[str]] = None,
        step_logger: Optional[StepLogger] = None,
    ):
        self.page = page
        self.count_selectors = list(count_selectors or BLOCK_COUNT_SELECTORS)
        self.block_selectors = list(block_selectors or GENERIC_BLOCK_SELECTORS)
        self.steps = step_logger or StepLogger("verifier")

    async def verify(
        self,
        operation_kind: Union[OperationKind, str],
        target_id: str,
    ) -> VerificationResult:
        """
        Check the post-condition of `operation_kind` for `target_id`.

        Args:
            operation_kind: add, duplicate, move, delete or exists
            target_id: Block id (DOM id / data-block-id) or a generated id

        Returns:
            VerificationResult; never raises
        """
        kind_label = getattr(operation_kind, "value", operation_kind)
        with allure.step(f"Verify {kind_label} operation: {target_id}"):
            self.steps.start(f"Verifying block operation: {kind_label}", target_id)
            try:
                kind = OperationKind(operation_kind)
                if not target_id:
                    raise ValueError("empty block id")
                if self.page.is_closed():
                    raise RuntimeError("page is closed")
                total = await self.count_blocks()
                exists = await self.find_target(target_id) is not None
                result = self._apply_policy(kind, exists, total)
            except Exception as e:
                self.steps.error("Verification failed", str(e))
                return VerificationResult(
                    operation_kind=str(kind_label),
                    success=False,
                    target_exists=False,
                    element_count=0,
                    message=f"Verification failed: {e}",
                )

            if result.success:
                self.steps.success(f"Verification result: {result.message}", f"{total} blocks")
            else:
                self.steps.warning(f"Verification result: {result.message}", f"{total} blocks")
            return result

    @staticmethod
    def _apply_policy(kind: OperationKind, exists: bool, total: int) -> VerificationResult:
        position_changed = None
        if kind == OperationKind.ADD:
            success = exists and total > 0
            message = "Block added successfully" if success else "Block not found after addition"
        elif kind == OperationKind.DUPLICATE:
            success = total > 1
            message = "Block duplicated successfully" if success else "Duplication not verified"
        elif kind == OperationKind.MOVE:
            success = exists
            position_changed = True
            message = "Block move completed" if exists else "Block not found after move"
        elif kind == OperationKind.DELETE:
            success = not exists
            message = "Block deleted successfully" if success else "Block still exists after deletion"
        else:
            success = exists
            message = "Block exists" if exists else "Block does not exist"

        return VerificationResult(
            operation_kind=kind.value,
            success=success,
            target_exists=exists,
            element_count=total,
            message=message,
            position_changed=position_changed,
        )

    async def count_blocks(self) -> int:
        """Largest match count across the block selector cascade."""
        total = 0
        for selector in self.count_selectors:
            try:
                total = max(total, await self.page.locator(selector).count())
            except Exception as e:
                logger.debug(f"Block count selector failed: {selector} ({e})")
        return total

    async def find_target(self, target_id: str) -> Optional[Locator]:
        """
        Locate the block for `target_id`.

        Real ids must equal `id` or `data-block-id` exactly. Generated ids never
        reach the DOM, so any block counts as the target. An empty id matches
        nothing.
        """
        self.steps.start(f"Finding block: {target_id}")

        if not target_id:
            self.steps.warning("Block not found: empty block id")
            return None

        if not target_id.startswith(GENERATED_ID_PREFIX):
            for selector in _id_selectors(target_id):
                try:
                    elements = self.page.locator(selector)
                    if await elements.count() > 0:
                        self.steps.success(f"Found block with selector: {selector}")
                        return elements.first
                except Exception as e:
                    logger.debug(f"Block id selector failed: {selector} ({e})")

            for selector in self.block_selectors:
                match = await self._match_attribute(selector, target_id)
                if match is not None:
                    self.steps.success(f"Found specific block: {target_id}")
                    return match
        else:
            for selector in self.block_selectors:
                try:
                    elements = self.page.locator(selector)
                    if await elements.count() > 0:
                        self.steps.success(f"Found block with selector: {selector}")
                        return elements.first
                except Exception as e:
                    logger.debug(f"Block selector failed: {selector} ({e})")

        self.steps.warning(f"Block not found: {target_id}")
        return None

    async def _match_attribute(self, selector: str, target_id: str) -> Optional[Locator]:
        try:
            elements = self.page.locator(selector)
            count = await elements.count()
            for i in range(count):
                element = elements.nth(i)
                if target_id in (
                    await element.get_attribute("id"),
                    await element.get_attribute("data-block-id"),
                ):
                    return element
        except Exception as e:
            logger.debug(f"Block attribute scan failed: {selector} ({e})")
        return None


__all__ = [
    "BLOCK_COUNT_SELECTORS",
    "GENERATED_ID_PREFIX",
    "GENERIC_BLOCK_SELECTORS",
    "OperationKind",
    "OperationVerifier",
    "VerificationResult",
    "generate_block_id",
]
