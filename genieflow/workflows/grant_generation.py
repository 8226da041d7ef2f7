"""Grant proposal generation workflow.

Steps, each checkpointed separately:
1. generate      - AI proposal text (failure is terminal for the run)
2. persist       - write the text to the grant application
3. log-activity  - audit entry (non-fatal)
4. notify        - user notification (non-fatal)
"""

import logging
from typing import Any, Dict

from genieflow.agents.grant_writing import GrantWritingAgent
from genieflow.errors import NotFoundError, OwnershipError, StepFailedError, TerminalGenerationError
from genieflow.models.grant import GrantApplication
from genieflow.schemas.workflow import GrantGenerationTrigger
from genieflow.services.activity import log_activity
from genieflow.services.notifications import notify_proposal_ready
from genieflow.workflows.base import BaseWorkflow

logger = logging.getLogger(__name__)


def build_proposal_prompt(data: GrantGenerationTrigger) -> str:
    """Build the generation prompt from the trigger input."""
    lines = [
        "Generate a comprehensive grant proposal for the following project:",
        "",
        f"Project Name: {data.project_name}",
        f"Funder: {data.funder_name}",
    ]
    if data.funding_amount:
        lines.append(f"Funding Amount Requested: {data.funding_amount}")
    if data.deadline:
        lines.append(f"Deadline: {data.deadline}")
    lines.append("")

    if data.rfp_text:
        lines += ["RFP/Grant Guidelines:", data.rfp_text, ""]
    if data.teaching_materials:
        lines += ["Organization Background & Writing Style:", data.teaching_materials, ""]

    lines += [
        "Please generate a complete grant proposal following best practices for nonprofit grant writing. Include:",
        "1. Executive Summary",
        "2. Statement of Need",
        "3. Program Description",
        "4. Expected Outcomes and Impact",
        "5. Budget Summary",
        "",
        "Make it compelling, data-driven, and aligned with the funder's priorities.",
    ]
    return "\n".join(lines)


class GrantGenerationWorkflow(BaseWorkflow):
    """Generate, save, log and announce a grant proposal."""

    NAME = "grant_generation"

    def _generate(self, data: GrantGenerationTrigger) -> str:
        agent = GrantWritingAgent(self.llm)
        return agent.generate(build_proposal_prompt(data)).text

    def _save_proposal(self, grant_id: int, user_id: str, content: str) -> Dict[str, Any]:
        grant = self.db.query(GrantApplication).filter(GrantApplication.id == grant_id).first()
        if not grant:
            raise NotFoundError(f"Grant application {grant_id} not found")
        if grant.user_id != user_id:
            raise OwnershipError(f"Grant application {grant_id} not found")

        grant.proposal_content = content
        grant.status = "Draft"
        grant.updated_at = self.now()
        self.db.flush()
        return {"success": True}

    def _log_activity(self, user_id: str, grant_id: int, grant_title: str) -> Dict[str, Any]:
        log_activity(
            self.db,
            user_id=user_id,
            action="grant_generated",
            entity_type="grant",
            entity_id=grant_id,
            details=f"Generated proposal for: {grant_title}",
        )
        return {"success": True}

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run the four pipeline steps."""
        data = GrantGenerationTrigger.model_validate(payload)
        user_id = self.user_id_from(payload)

        try:
            content = self.step("generate", self._generate, data)
        except StepFailedError as e:
            raise TerminalGenerationError(f"Proposal generation failed: {e.message}") from e

        self.step("persist", self._save_proposal, data.grant_id, user_id, content)

        degraded = []
        side_effects = (
            ("log-activity", lambda: self._log_activity(user_id, data.grant_id, data.project_name)),
            ("notify", lambda: notify_proposal_ready(self.db, user_id, data.project_name)),
        )
        for key, fn in side_effects:
            try:
                self.step(key, fn)
            except StepFailedError as e:
                logger.error(f"Grant {data.grant_id}: non-fatal step {key} exhausted retries: {e.message}")
                degraded.append(key)

        result = {
            "success": True,
            "grantId": data.grant_id,
            "contentLength": len(content),
        }
        if degraded:
            result["degraded"] = degraded
        return result

    def failure_result(self, error: Exception) -> Dict[str, Any]:
        return {
            "success": False,
            "grantId": (self.run.payload or {}).get("grantId"),
            "error": str(error),
        }
