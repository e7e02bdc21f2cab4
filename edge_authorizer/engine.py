"""
The authorization decision engine.

Given the permission catalog and a validated caller, pick the binding the
caller is allowed to use:

    for each binding, in catalog order:
        ask the capability checker: does the caller hold binding.abstract_name?
        the first "yes" wins, stop

This is first-match, not best-match. The engine does not compare how much
each binding grants; catalog order is the priority order. When nothing
matches (an empty catalog included) the engine raises AuthorizationError
rather than returning a Deny decision.

A failing capability check is handled according to CheckErrorPolicy:
SKIP logs it and treats that binding as not held, FAIL aborts the decision
with the CapabilityCheckError.

With max_workers > 1 the checks run concurrently on a thread pool, but the
results are still consumed in catalog order, so the lowest-index match wins
no matter which call returns first.

The requested method ARN is not compared against the selected binding's
resources; the binding is granted as a whole.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Callable, Sequence

from edge_authorizer.capabilities import CapabilityChecker
from edge_authorizer.errors import AuthorizationError, CapabilityCheckError
from edge_authorizer.models import AuthorizationContext, Decision, Effect, PermissionBinding

logger = logging.getLogger("edge-authorizer")


class CheckErrorPolicy(Enum):
    """What to do when a capability check fails instead of answering."""

    SKIP = "skip"
    FAIL = "fail"


class DecisionEngine:
    """
    First-match permission selection over a catalog.

    Args:
        checker: Answers whether a caller holds a permission
        on_check_error: SKIP treats a failed check as "not held", FAIL re-raises it
        max_workers: Above 1, checks run concurrently on a thread pool of this size
    """

    def __init__(
        self,
        checker: CapabilityChecker,
        *,
        on_check_error: CheckErrorPolicy = CheckErrorPolicy.SKIP,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._checker = checker
        self._on_check_error = on_check_error
        self._max_workers = max_workers

    def decide(self, catalog: Sequence[PermissionBinding], ctx: AuthorizationContext) -> Decision:
        """
        Select the first binding the caller holds and allow its resources.

        Raises:
            AuthorizationError: no binding matched
            CapabilityCheckError: a check failed and the policy is FAIL
            ValueError: the context is inactive or has no identity; callers
                must reject those before asking for a decision
        """
        if not ctx.is_active or not ctx.caller_identity:
            raise ValueError("Cannot decide for an inactive or anonymous caller")

        if self._max_workers > 1 and len(catalog) > 1:
            binding = self._first_match_concurrent(catalog, ctx.caller_identity)
        else:
            binding = self._first_match(catalog, ctx.caller_identity)

        if binding is None:
            raise AuthorizationError(
                f"Caller '{ctx.caller_identity}' holds none of {len(catalog)} catalog permissions"
            )

        return Decision(
            effect=Effect.ALLOW,
            resources=binding.resources,
            permission=binding.abstract_name,
        )

    def _first_match(self, catalog, identity: str) -> PermissionBinding | None:
        for index, binding in enumerate(catalog):
            check = partial(self._checker.check, identity, binding.abstract_name)
            if self._granted(index, binding, identity, check):
                return binding
        return None

    def _first_match_concurrent(self, catalog, identity: str) -> PermissionBinding | None:
        pool = ThreadPoolExecutor(max_workers=self._max_workers)
        futures = [
            pool.submit(self._checker.check, identity, binding.abstract_name)
            for binding in catalog
        ]
        try:
            # Consume in catalog order, not completion order.
            for index, (binding, future) in enumerate(zip(catalog, futures)):
                if self._granted(index, binding, identity, future.result):
                    return binding
            return None
        finally:
            # Drop queued checks and don't wait for the ones already running.
            pool.shutdown(wait=False, cancel_futures=True)

    def _granted(
        self,
        index: int,
        binding: PermissionBinding,
        identity: str,
        check: Callable[[], bool],
    ) -> bool:
        try:
            granted = check()
        except CapabilityCheckError as e:
            if self._on_check_error is CheckErrorPolicy.FAIL:
                raise
            logger.warning(
                "Capability check failed, treating permission as not held",
                extra={
                    "auth_data": {
                        "subject": identity,
                        "permission": binding.abstract_name,
                        "catalog_index": index,
                        "reason": e.reason,
                    }
                },
            )
            return False

        logger.debug(
            "Capability checked",
            extra={
                "auth_data": {
                    "subject": identity,
                    "permission": binding.abstract_name,
                    "catalog_index": index,
                    "granted": granted,
                }
            },
        )
        return granted is True
