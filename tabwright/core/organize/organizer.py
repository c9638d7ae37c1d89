"""Self-correcting tab organization loop and related one-shot calls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional, Sequence

from tabwright.core.fallback import FallbackOrchestrator
from tabwright.core.organize.prompts import (
    CONNECTION_TEST_PROMPT,
    EXPLAIN_SYSTEM_PROMPT,
    build_correction_prompt,
    build_system_prompt,
    build_user_prompt,
    normalize_strategy,
)
from tabwright.core.organize.validation import (
    Organization,
    ValidationFailure,
    check_reply,
)
from tabwright.core.providers import RequestOptions
from tabwright.core.providers.errors import ProviderError
from tabwright.core.session import AIUnavailableError
from tabwright.utils.log import get_logger
from tabwright.utils.messages import (
    ChatMessage,
    TabDescriptor,
    create_assistant_message,
    create_system_message,
    create_user_message,
)

logger = get_logger()

MAX_ORGANIZE_ATTEMPTS = 3
ORGANIZE_MAX_TOKENS = 2048
ORGANIZE_TEMPERATURE = 0.3
ORGANIZE_FEEDBACK_TEMPERATURE = 0.5


class OrganizationFailedError(Exception):
    """The model never produced a valid assignment within the attempt budget."""

    def __init__(self, failure: ValidationFailure, attempts: int) -> None:
        super().__init__(
            f"AI could not produce a valid organization after {attempts} attempts: "
            f"{failure.message}"
        )
        self.failure = failure
        self.attempts = attempts


@dataclass(frozen=True)
class ConnectionCheck:
    success: bool
    response: Optional[str] = None
    error: Optional[str] = None


class TabOrganizer:
    """Asks the model for a tab→group assignment and re-prompts until it is valid."""

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        *,
        max_attempts: int = MAX_ORGANIZE_ATTEMPTS,
    ) -> None:
        self.orchestrator = orchestrator
        self.max_attempts = max(1, max_attempts)

    async def organize(
        self,
        tabs: Sequence[TabDescriptor],
        strategy: Optional[str] = None,
        feedback: Optional[str] = None,
    ) -> Organization:
        """Return a validated organization of ``tabs``.

        Raises OrganizationFailedError with the last ValidationFailure when no
        attempt passes validation. ProviderError propagates on the first
        transport or provider failure.
        """
        if not tabs:
            raise ValueError("No tabs to organize")
        tab_ids = [tab.id for tab in tabs]
        if len(set(tab_ids)) != len(tab_ids):
            raise ValueError("Tab ids must be unique")

        strategy = normalize_strategy(strategy)
        has_feedback = bool(feedback and feedback.strip())
        options = RequestOptions(
            max_tokens=ORGANIZE_MAX_TOKENS,
            temperature=ORGANIZE_FEEDBACK_TEMPERATURE if has_feedback else ORGANIZE_TEMPERATURE,
        )
        conversation: List[ChatMessage] = [
            create_system_message(build_system_prompt(strategy, tab_ids)),
            create_user_message(build_user_prompt(tabs, feedback)),
        ]

        attempt = 0
        while True:
            attempt += 1
            logger.debug(
                "[organizer] Requesting organization",
                extra={"attempt": attempt, "tabs": len(tabs), "strategy": strategy},
            )
            reply = await self.orchestrator.call_with_fallback(conversation, options)
            assignments, failure = check_reply(reply, tab_ids)
            if failure is None:
                logger.info(
                    "[organizer] Organization accepted",
                    extra={"attempt": attempt, "tabs": len(tabs)},
                )
                return Organization.from_assignments(assignments or [])

            logger.info(
                "[organizer] Reply failed validation",
                extra={"attempt": attempt, "violations": list(failure.violations)},
            )
            if attempt >= self.max_attempts:
                raise OrganizationFailedError(failure, attempt)
            conversation = conversation + [
                create_assistant_message(reply),
                create_user_message(build_correction_prompt(failure.violations, tab_ids)),
            ]

    async def explain_organization(self, organization: Organization) -> str:
        """Ask the model for a short prose explanation of an organization."""
        messages = [
            create_system_message(EXPLAIN_SYSTEM_PROMPT),
            create_user_message(
                "Explain this tab organization in 2-3 sentences:\n"
                + json.dumps(organization.to_dict(), indent=2)
            ),
        ]
        return await self.orchestrator.call_with_fallback(
            messages, RequestOptions(max_tokens=256, temperature=0.5)
        )

    async def test_connection(self) -> ConnectionCheck:
        """Send a trivial prompt and report whether the provider answered."""
        try:
            response = await self.orchestrator.call_with_fallback(
                [create_user_message(CONNECTION_TEST_PROMPT)],
                RequestOptions(max_tokens=10),
            )
        except (ProviderError, AIUnavailableError) as exc:
            logger.warning(
                "[organizer] Connection test failed: %s",
                type(exc).__name__,
                extra={"provider": self.orchestrator.session.provider.id.value},
            )
            return ConnectionCheck(success=False, error=str(exc))
        return ConnectionCheck(success=True, response=response.strip())
