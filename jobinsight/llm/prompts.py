"""Prompt templates for market insight generation."""

from abc import ABC, abstractmethod
from typing import Any

from jobinsight.scraping.models import Listing
from jobinsight.vectorstore.models import SimilarityMatch


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


# Section headings the narrative is asked to follow, with the points each covers.
INSIGHT_SECTIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Market Overview",
        (
            "Current demand trends for {subject}",
            "Salary ranges and compensation patterns",
            "Common job types and work arrangements",
            "Industry distribution",
        ),
    ),
    (
        "Required Skills Analysis",
        (
            "Most common technical skills",
            "Required experience levels",
            "Emerging technologies",
            "Soft skills and qualifications",
        ),
    ),
    (
        "Company Insights",
        (
            "Industry distribution",
            "Company size patterns",
            "Work culture indicators",
            "Growth opportunities",
        ),
    ),
    (
        "Career Opportunities",
        (
            "Growth potential",
            "Career paths",
            "Required qualifications",
            "Professional development",
        ),
    ),
    (
        "Market Trends",
        (
            "Industry trends",
            "Demand for {subject}",
            "Competitive position",
            "Future outlook",
        ),
    ),
)


class MarketInsightPromptTemplate(PromptTemplate):
    """Prompt template for job market insight narratives.

    Renders one listing, or a set of listings, plus optional context from
    similar prior insights into a system prompt and a user prompt.
    """

    DEFAULT_SYSTEM_PROMPT = (
        "You are a job market analyst with expertise in technology roles. "
        "Provide detailed, actionable insights about job listings. Focus on "
        "technical skills, market trends, and career opportunities. Always "
        "provide insights even if the job description is limited."
    )

    DEFAULT_USER_TEMPLATE = """As a job market analyst, {task}:

{listings}
{context}
Please provide a detailed analysis in the following format:

{sections}

Format each section with clear bullet points and specific details."""

    def __init__(
        self,
        system_prompt: str | None = None,
        user_template: str | None = None,
        excerpt_chars: int = 500,
    ) -> None:
        """Initialize the prompt template.

        Args:
            system_prompt: Custom system prompt.
            user_template: Custom user template with ``task``, ``listings``,
                ``context`` and ``sections`` placeholders.
            excerpt_chars: Characters of each prior insight shown as context.
        """
        self.system_prompt = system_prompt or self.DEFAULT_SYSTEM_PROMPT
        self.user_template = user_template or self.DEFAULT_USER_TEMPLATE
        self.excerpt_chars = excerpt_chars

    def format(self, **kwargs: Any) -> str:
        """Format the user template."""
        return self.user_template.format(**kwargs)

    def format_listing(self, listing: Listing) -> str:
        """Render the field set of one listing."""
        lines = [
            f"Title: {listing.title}",
            f"Company: {listing.company}",
            f"Location: {listing.location or 'Not specified'}",
            f"Salary: {listing.salary or 'Not specified'}",
            f"Job Type: {listing.job_type or 'Not specified'}",
        ]
        if listing.posted_date:
            lines.append(f"Posted Date: {listing.posted_date}")
        lines.append(f"Description: {listing.description}")
        return "\n".join(lines)

    def format_context(self, matches: list[SimilarityMatch]) -> str:
        """Render similar prior insights as a context block.

        Returns an empty string when there is no context.
        """
        if not matches:
            return ""

        blocks = []
        for match in matches:
            meta = match.metadata
            excerpt = str(meta.get("text", ""))[: self.excerpt_chars]
            blocks.append(
                "\n".join(
                    [
                        f"Title: {meta.get('title', 'Unknown')}",
                        f"Company: {meta.get('company', 'Unknown')}",
                        f"Location: {meta.get('location', 'Unknown')}",
                        f"Salary: {meta.get('salary', 'Not specified')}",
                        f"Job Type: {meta.get('job_type', 'Not specified')}",
                        f"Similarity: {match.score * 100:.1f}%",
                        f"Prior Insight: {excerpt}",
                    ]
                )
            )
        return "\nContext from Similar Jobs:\n" + "\n\n".join(blocks) + "\n"

    def format_sections(self, subject: str) -> str:
        """Render the numbered section outline the narrative must follow."""
        parts = []
        for number, (heading, points) in enumerate(INSIGHT_SECTIONS, start=1):
            bullets = "\n".join(f"- {point.format(subject=subject)}" for point in points)
            parts.append(f"{number}. {heading}\n{bullets}")
        return "\n\n".join(parts)

    def build_listing_prompt(
        self,
        listing: Listing,
        context: list[SimilarityMatch] | None = None,
    ) -> tuple[str, str]:
        """Build the prompt for a single listing.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        user_prompt = self.format(
            task="analyze this job listing and provide comprehensive insights",
            listings="Current Job Details:\n" + self.format_listing(listing),
            context=self.format_context(context or []),
            sections=self.format_sections("this role"),
        )
        return self.system_prompt, user_prompt

    def build_combined_prompt(
        self,
        listings: list[Listing],
        context: list[SimilarityMatch] | None = None,
    ) -> tuple[str, str]:
        """Build the prompt for a combined analysis across listings.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        rendered = "\n\n".join(self.format_listing(listing) for listing in listings)
        user_prompt = self.format(
            task=(
                "analyze these job listings and provide comprehensive "
                "combined insights"
            ),
            listings="Jobs to Analyze:\n" + rendered,
            context=self.format_context(context or []),
            sections=self.format_sections("these roles"),
        )
        return self.system_prompt, user_prompt
