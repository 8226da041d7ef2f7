"""Client-resident genie session state, mirrored to the session API.

Local state is a plain snapshot: load() overwrites it entirely with the
server record and save() pushes it entirely. save() reports failure by
returning None; load() raises.
"""

import copy
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import httpx

from genieflow.client.session_api import SessionApiClient
from genieflow.errors import GenieFlowError
from genieflow.time_utils import utcnow

logger = logging.getLogger(__name__)


class BaseGenieCoordinator:
    """Shared save/load/reset flow; subclasses own the genie-specific fields."""

    GENIE_TYPE = ""

    def __init__(self, api: SessionApiClient):
        self.api = api
        self.is_saving = False
        self.reset()

    def reset(self) -> None:
        """Clear local state and detach from any loaded session."""
        self.session_id: Optional[int] = None
        self.session_name = ""
        self._reset_fields()

    def save(self) -> Optional[int]:
        """
        Create or update the session from local state.

        Returns:
            The session id, or None if the save failed
        """
        self.is_saving = True
        try:
            payload = {k: v for k, v in self._build_payload().items() if v is not None}
            if self.session_id:
                session = self.api.update(self.session_id, payload, log_execution=self._should_log_execution())
            else:
                session = self.api.create(payload)

            self.session_id = session.get("id") or self.session_id
            return self.session_id
        except (httpx.HTTPError, GenieFlowError, ValueError) as e:
            logger.error(f"Failed to save {self.GENIE_TYPE} session: {e}")
            return None
        finally:
            self.is_saving = False

    def load(self, session_id: int) -> None:
        """
        Replace local state with the stored session.

        Raises:
            SessionNotFoundError: If the session is missing or owned by another user
            SessionApiError: On any other API failure
        """
        session = self.api.get(session_id)
        fields = self._fields_from_session(session)

        self.session_id = session["id"]
        self.session_name = session["name"]
        for name, value in fields.items():
            setattr(self, name, value)

    def _reset_fields(self) -> None:
        raise NotImplementedError

    def _build_payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _should_log_execution(self) -> bool:
        raise NotImplementedError

    def _fields_from_session(self, session: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass
class GrantFormData:
    """Grant genie form inputs, stored as the session's inputData."""

    projectName: str = ""
    funderName: str = ""
    fundingAmount: str = ""
    deadline: str = ""
    rfpText: str = ""
    teachingMaterials: str = ""

    @classmethod
    def from_input_data(cls, data: Optional[Dict[str, Any]]) -> "GrantFormData":
        known = {k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


class GrantGenieCoordinator(BaseGenieCoordinator):
    """State for the grant writing genie."""

    GENIE_TYPE = "grant_writing"

    def _reset_fields(self) -> None:
        self.form_data = GrantFormData()
        self.proposal_content = ""
        self.is_generating = False

    def set_form_data(self, **changes: str) -> None:
        for name, value in changes.items():
            if name not in GrantFormData.__dataclass_fields__:
                raise AttributeError(f"Unknown grant form field: {name}")
            setattr(self.form_data, name, value)

    def set_proposal_content(self, content: str) -> None:
        self.proposal_content = content

    def _build_payload(self) -> Dict[str, Any]:
        return {
            "name": self.session_name or self.form_data.projectName or "Untitled Session",
            "genieType": self.GENIE_TYPE,
            "config": {},
            "inputData": asdict(self.form_data),
            "outputContent": self.proposal_content or None,
            "status": "completed" if self.proposal_content else "draft",
        }

    def _should_log_execution(self) -> bool:
        return bool(self.proposal_content)

    def _fields_from_session(self, session: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "form_data": GrantFormData.from_input_data(session.get("inputData")),
            "proposal_content": session.get("outputContent") or "",
        }


DEFAULT_DONOR_CONFIG = {
    "donorProfile": "",
    "donorType": "Individual",
    "warmthFactor": "Warm",
    "practiceFormat": "First Meeting",
}


class DonorGenieCoordinator(BaseGenieCoordinator):
    """State for the donor meeting practice genie."""

    GENIE_TYPE = "donor_meeting"

    def _reset_fields(self) -> None:
        self.session_config: Dict[str, Any] = copy.deepcopy(DEFAULT_DONOR_CONFIG)
        self.conversation_history: List[Dict[str, Any]] = []
        self.coaching_tips: List[str] = []
        self.score: Optional[float] = None
        self.is_active = False

    def set_session_config(self, **changes: Any) -> None:
        self.session_config.update(changes)

    def add_message(self, role: str, content: str) -> None:
        self.conversation_history.append({"role": role, "content": content})

    def add_coaching_tip(self, tip: str) -> None:
        self.coaching_tips.append(tip)

    def set_score(self, score: float) -> None:
        self.score = score

    def _status(self) -> str:
        if self.is_active:
            return "in_progress"
        return "completed" if self.score is not None else "draft"

    def _build_payload(self) -> Dict[str, Any]:
        saved_at = utcnow().isoformat()
        return {
            "name": self.session_name or f"Donor Practice - {self.session_config.get('donorType', 'Individual')}",
            "genieType": self.GENIE_TYPE,
            "config": self.session_config,
            "inputData": {"donorProfile": self.session_config.get("donorProfile", "")},
            "conversationHistory": [
                {**message, "timestamp": message.get("timestamp") or saved_at}
                for message in self.conversation_history
            ],
            "outputMetadata": {
                "coachingTips": self.coaching_tips,
                "score": self.score,
            },
            "status": self._status(),
        }

    def _should_log_execution(self) -> bool:
        return self.score is not None

    def _fields_from_session(self, session: Dict[str, Any]) -> Dict[str, Any]:
        metadata = session.get("outputMetadata") or {}
        return {
            "session_config": session.get("config") or copy.deepcopy(DEFAULT_DONOR_CONFIG),
            "conversation_history": list(session.get("conversationHistory") or []),
            "coaching_tips": list(metadata.get("coachingTips") or []),
            "score": metadata.get("score"),
            "is_active": session.get("status") == "in_progress",
        }
