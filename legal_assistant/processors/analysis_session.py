"""
Analysis Session

Holds the state of one two-party analysis and sequences the operations:

  per party (independently):  summarize | evaluate   (never both at once)
  once both summaries and the key issues exist:
      synthesize -> case summary, comparison table, counter-arguments,
                    argument structure, issued concurrently

Synthesis is all-or-nothing: the bundle is replaced only when all four calls
succeed, and cleared otherwise.

Errors never leave a session operation; they are recorded on the party slot
or on the session and the operation returns False.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from legal_assistant.errors import AnalysisError, PreconditionError
from legal_assistant.models import AnalysisBundle, Evidence, LawsuitType, Party, party_labels
from legal_assistant.processors.analysis_dispatcher import AnalysisDispatcher
from legal_assistant.processors.prompt_builder import (
    AnalysisRequest,
    build_case_summary,
    build_comparison_table,
    build_counter_arguments,
    build_evaluate_evidence,
    build_structure_arguments,
    build_summarize_document,
)
from legal_assistant.utils.file_parser import format_bytes, load_evidence, make_evidence, parse_txt

logger = logging.getLogger(__name__)

SUMMARIZE_INPUT_MESSAGE = '요약할 주장이나 증거를 입력해주세요.'
EVALUATE_INPUT_MESSAGE = '평가를 위해 주장과 증거를 모두 입력해주세요.'
OPPONENT_SUMMARY_MESSAGE = '상대방의 주장을 먼저 요약해주세요.'
NO_OWN_ARGUMENTS_MESSAGE = '정리할 나의 주장이 없습니다. {label}측 주장을 요약하거나 직접 입력해주세요.'


class PartyActivity(str, Enum):
    IDLE = 'idle'
    SUMMARIZING = 'summarizing'
    EVALUATING = 'evaluating'


class SynthesisStatus(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETE = 'complete'
    FAILED = 'failed'


@dataclass
class PartyState:
    argument: str = ''
    evidence: Optional[Evidence] = None
    summary: str = ''
    evaluation: str = ''
    activity: PartyActivity = PartyActivity.IDLE
    error: Optional[str] = None
    error_kind: Optional[str] = None
    evidence_error: Optional[str] = None
    argument_file_error: Optional[str] = None

    @property
    def has_argument(self) -> bool:
        return bool(self.argument.strip())


async def run_synthesis(
    dispatcher: AnalysisDispatcher,
    requests: Tuple[AnalysisRequest, AnalysisRequest, AnalysisRequest, AnalysisRequest],
) -> AnalysisBundle:
    """Fire the four synthesis requests together and wait for all of them.

    Returns a complete bundle or raises the first AnalysisError; partial
    results are never returned.
    """
    summary, comparison, counter, structured = await asyncio.gather(
        *(dispatcher.dispatch(request) for request in requests)
    )
    return AnalysisBundle(
        summary=summary,
        comparison=comparison,
        counter_arguments=counter,
        structured_arguments=structured,
    )


class AnalysisSession:
    """One user's analysis of a matter between two parties."""

    def __init__(self, lawsuit_type: Optional[LawsuitType] = None):
        self.lawsuit_type = lawsuit_type
        self.parties: Dict[Party, PartyState] = {party: PartyState() for party in Party}
        self.key_issues = ''
        self.my_side = Party.PLAINTIFF
        self.my_arguments = ''
        self.bundle: Optional[AnalysisBundle] = None
        self.synthesis_status = SynthesisStatus.IDLE
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None

    @property
    def labels(self) -> Dict[Party, str]:
        return party_labels(self.lawsuit_type)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_argument(self, party: Party, text: str) -> None:
        self.parties[party].argument = text or ''

    def drop_argument_file(self, party: Party, media_type: str, data: bytes) -> bool:
        """Replace the argument with a dropped text/plain file; anything else leaves it untouched."""
        state = self.parties[party]
        state.argument_file_error = None
        try:
            state.argument = parse_txt(media_type, data)
        except AnalysisError as e:
            logger.warning("Rejected argument file for %s: %s", party.value, e.detail)
            state.argument_file_error = e.message
            return False
        return True

    def attach_evidence(self, party: Party, filename: str, media_type: str, data: bytes) -> bool:
        """Store an image or PDF as the party's evidence, replacing any previous one."""
        state = self.parties[party]
        state.evidence_error = None
        try:
            state.evidence = make_evidence(filename, media_type, data)
        except AnalysisError as e:
            logger.warning("Rejected evidence for %s: %s", party.value, e.detail)
            state.evidence_error = e.message
            return False
        logger.info("Stored %s evidence for %s (%s)", state.evidence.kind.value, party.value, filename)
        return True

    def remove_evidence(self, party: Party) -> None:
        state = self.parties[party]
        state.evidence = None
        state.evidence_error = None

    # ------------------------------------------------------------------
    # Control availability
    # ------------------------------------------------------------------

    def can_summarize(self, party: Party) -> bool:
        state = self.parties[party]
        return (state.has_argument or state.evidence is not None) and state.activity is PartyActivity.IDLE

    def can_evaluate(self, party: Party) -> bool:
        state = self.parties[party]
        return state.has_argument and state.evidence is not None and state.activity is PartyActivity.IDLE

    @property
    def ready_to_synthesize(self) -> bool:
        return (
            all(state.summary.strip() for state in self.parties.values())
            and bool(self.key_issues.strip())
        )

    @property
    def can_synthesize(self) -> bool:
        return self.ready_to_synthesize and self.synthesis_status is not SynthesisStatus.RUNNING

    # ------------------------------------------------------------------
    # Per-party operations
    # ------------------------------------------------------------------

    async def summarize(self, party: Party, dispatcher: AnalysisDispatcher) -> bool:
        state = self.parties[party]
        if state.activity is not PartyActivity.IDLE:
            logger.warning("Summarize ignored: %s is %s", party.value, state.activity.value)
            return False
        if not state.has_argument and state.evidence is None:
            logger.warning("Summarize refused for %s: no argument or evidence", party.value)
            state.error = SUMMARIZE_INPUT_MESSAGE
            state.error_kind = PreconditionError.__name__
            return False

        state.activity = PartyActivity.SUMMARIZING
        state.error = None
        state.error_kind = None
        try:
            loaded = load_evidence(state.evidence) if state.evidence is not None else None
            state.summary = await dispatcher.dispatch(build_summarize_document(state.argument, loaded))
            return True
        except AnalysisError as e:
            logger.warning("Summarize failed for %s: %s", party.value, e.detail or e.message)
            state.error = e.message
            state.error_kind = type(e).__name__
            return False
        finally:
            state.activity = PartyActivity.IDLE

    async def evaluate(self, party: Party, dispatcher: AnalysisDispatcher) -> bool:
        state = self.parties[party]
        if state.activity is not PartyActivity.IDLE:
            logger.warning("Evaluate ignored: %s is %s", party.value, state.activity.value)
            return False
        if not state.has_argument or state.evidence is None:
            logger.warning("Evaluate refused for %s: argument and evidence both required", party.value)
            state.error = EVALUATE_INPUT_MESSAGE
            state.error_kind = PreconditionError.__name__
            return False

        state.activity = PartyActivity.EVALUATING
        state.error = None
        state.error_kind = None
        try:
            loaded = load_evidence(state.evidence)
            state.evaluation = await dispatcher.dispatch(build_evaluate_evidence(state.argument, loaded))
            return True
        except AnalysisError as e:
            logger.warning("Evaluate failed for %s: %s", party.value, e.detail or e.message)
            state.error = e.message
            state.error_kind = type(e).__name__
            return False
        finally:
            state.activity = PartyActivity.IDLE

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesis_requests(self) -> Tuple[AnalysisRequest, AnalysisRequest, AnalysisRequest, AnalysisRequest]:
        """Build all four synthesis requests, checking every precondition before anything is sent."""
        labels = self.labels
        opponent = self.my_side.opponent
        plaintiff_summary = self.parties[Party.PLAINTIFF].summary
        defendant_summary = self.parties[Party.DEFENDANT].summary
        opponent_summary = self.parties[opponent].summary
        own_summary = self.parties[self.my_side].summary

        if not opponent_summary.strip():
            raise PreconditionError(OPPONENT_SUMMARY_MESSAGE)
        own_arguments = self.my_arguments if self.my_arguments.strip() else own_summary
        if not own_arguments.strip():
            raise PreconditionError(NO_OWN_ARGUMENTS_MESSAGE.format(label=labels[self.my_side]))

        return (
            build_case_summary(plaintiff_summary, defendant_summary),
            build_comparison_table(plaintiff_summary, defendant_summary, self.key_issues),
            build_counter_arguments(opponent_summary, labels[self.my_side], labels[opponent]),
            build_structure_arguments(own_arguments, self.key_issues),
        )

    async def synthesize(self, dispatcher: AnalysisDispatcher) -> bool:
        if self.synthesis_status is SynthesisStatus.RUNNING:
            logger.warning("Synthesis already running")
            return False

        self.synthesis_status = SynthesisStatus.RUNNING
        self.error = None
        self.error_kind = None
        self.bundle = None
        try:
            self.bundle = await run_synthesis(dispatcher, self.synthesis_requests())
            self.synthesis_status = SynthesisStatus.COMPLETE
        except AnalysisError as e:
            logger.warning("Synthesis failed: %s", e.detail or e.message)
            self.bundle = None
            self.error = e.message
            self.error_kind = type(e).__name__
            self.synthesis_status = SynthesisStatus.FAILED
            return False
        finally:
            # Never leave the run marked as in progress
            if self.synthesis_status is SynthesisStatus.RUNNING:
                self.synthesis_status = SynthesisStatus.FAILED

        logger.info("Synthesis complete (%d comparison rows)", len(self.bundle.comparison))
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        labels = self.labels
        parties = {}
        for party, state in self.parties.items():
            evidence = None
            if state.evidence is not None:
                evidence = {
                    'filename': state.evidence.filename,
                    'media_type': state.evidence.media_type,
                    'kind': state.evidence.kind.value,
                    'size': format_bytes(state.evidence.size),
                }
            parties[party.value] = {
                'label': labels[party],
                'argument': state.argument,
                'evidence': evidence,
                'summary': state.summary,
                'evaluation': state.evaluation,
                'activity': state.activity.value,
                'error': state.error,
                'error_kind': state.error_kind,
                'evidence_error': state.evidence_error,
                'argument_file_error': state.argument_file_error,
                'can_summarize': self.can_summarize(party),
                'can_evaluate': self.can_evaluate(party),
            }

        bundle = None
        if self.bundle is not None:
            bundle = {
                'summary': self.bundle.summary,
                'comparison': [row.model_dump() for row in self.bundle.comparison],
                'counter_arguments': self.bundle.counter_arguments,
                'structured_arguments': self.bundle.structured_arguments,
            }

        return {
            'lawsuit_type': self.lawsuit_type.value if self.lawsuit_type else None,
            'parties': parties,
            'key_issues': self.key_issues,
            'my_side': self.my_side.value,
            'my_arguments': self.my_arguments,
            'ready_to_synthesize': self.ready_to_synthesize,
            'can_synthesize': self.can_synthesize,
            'synthesis_status': self.synthesis_status.value,
            'error': self.error,
            'error_kind': self.error_kind,
            'bundle': bundle,
        }
