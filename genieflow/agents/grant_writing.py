"""Grant writing agent."""

from genieflow.agents.base import BaseAgent
from genieflow.config import settings


class GrantWritingAgent(BaseAgent):
    """Agent for drafting nonprofit grant proposals."""

    MODEL = settings.GRANT_WRITING_MODEL
    TEMPERATURE = 0.7
    MAX_TOKENS = 4000
    INSTRUCTIONS = (
        "You are an expert nonprofit grant writer. You write clear, compelling, "
        "data-driven proposals that align the organization's program with the "
        "funder's stated priorities. Match the organization's voice when a writing "
        "sample is provided. Use section headings and never invent statistics that "
        "are not supported by the supplied materials."
    )
