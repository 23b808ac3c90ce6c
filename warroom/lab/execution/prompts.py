"""Prompt builders for each War Room phase.

Every builder is a pure function of its inputs and returns plain text.  The
templates are Jinja2 strings compiled once at import time.

- ``build_think_prompt``  : persona writes a brief (read-only, no code)
- ``build_build_prompt``  : builder synthesizes briefs and implements
- ``build_iterate_prompt``: builder makes surgical fixes from review feedback
- ``build_review_prompt`` : persona rates the work PASS / MINOR_ISSUES / MAJOR_ISSUES
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import jinja2

from warroom.lab.models.lab import Persona, Project

MAJOR_ISSUES = "MAJOR_ISSUES"


@dataclass(frozen=True)
class Contribution:
    """A completed brief or review fed into a builder prompt."""

    persona_name: str
    persona_role: str
    output: str


def has_major_issues(output: str | None) -> bool:
    """Case-insensitive check for the blocking-severity marker."""
    return bool(output) and MAJOR_ISSUES in output.upper()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_env = jinja2.Environment(autoescape=False, trim_blocks=True, lstrip_blocks=True)  # noqa: S701

_PROJECT_CONTEXT = """\
## Project Context
**Project:** {{ project.name }}
**Description:** {{ project.description }}
{% if with_goals and project.goals %}
**Goals:**
{% for goal in project.goals %}
- {{ goal }}
{% endfor %}
{% endif %}
{% if project.working_directory %}
**Working Directory:** {{ project.working_directory }}
{% endif %}
"""

_CONTRIBUTIONS = """\
{% for c in contributions %}
### {{ c.persona_name }} ({{ c.persona_role }})
{{ c.output }}
{% if not loop.last %}

---

{% endif %}
{% endfor %}
"""

_THINK = _env.from_string(
    """\
You are {{ persona.name }}, a {{ persona.role }}.

## Your Mindset
{{ persona.mindset }}

## Your Knowledge
{{ persona.knowledge }}

"""
    + _PROJECT_CONTEXT
    + """
## Your Task
The team has been asked to work on the following:

"{{ task }}"

Write a **brief** for this task from your perspective as {{ persona.role }}. Your brief should cover:
1. **Key concerns** from your domain expertise
2. **Requirements** you think are essential
3. **Risks** or pitfalls to watch out for
4. **Recommendations** for how to approach this

Keep your brief focused and actionable. Think about what you uniquely bring to this problem \
that other team members might miss.

Do NOT write code. Write a structured brief document."""
)

_BUILD = _env.from_string(
    """\
You are the Project Manager and Lead Implementer for this project.

"""
    + _PROJECT_CONTEXT
    + """
## Task
"{{ task }}"

## Team Briefs
Your team of experts has reviewed this task and provided the following briefs:

"""
    + _CONTRIBUTIONS
    + """
## Your Mission
1. **Synthesize** the briefs above into a coherent implementation plan
2. **Implement** the solution, taking into account all perspectives
3. **Create** well-structured, production-quality code
4. **Document** key decisions and trade-offs

You have full access to the filesystem and tools. Implement the solution now."""
)

_ITERATE = _env.from_string(
    """\
You are the Project Manager and Lead Implementer for this project.

"""
    + _PROJECT_CONTEXT
    + """
## Original Task
"{{ task }}"

## Review Feedback (Iteration {{ iteration }})
Your team of experts has reviewed the current implementation and found issues that need to be addressed:

"""
    + _CONTRIBUTIONS
    + """
## Your Mission
1. **Read** the review feedback above carefully: each reviewer has identified specific issues
2. **Fix** each MAJOR_ISSUES item, these are blocking problems that must be resolved
3. **Address** MINOR_ISSUES where practical
4. **Do NOT** rewrite from scratch; fix the existing implementation

Focus on the specific issues raised. Be surgical: make targeted fixes, not wholesale rewrites.

You have full access to the filesystem and tools. Fix the issues now."""
)

_REVIEW = _env.from_string(
    """\
You are {{ persona.name }}, a {{ persona.role }}.

## Your Mindset
{{ persona.mindset }}

## Your Evaluation Criteria
{{ persona.evaluation_criteria }}

"""
    + _PROJECT_CONTEXT
    + """
## Original Task
"{{ task }}"

## Your Review Mission
The team has completed implementation of the task above. Review the current state of the project:

1. **Read** the relevant code and files in the working directory
2. **Evaluate** the implementation against your criteria
3. **Rate** the quality: PASS, MINOR_ISSUES, or MAJOR_ISSUES
4. **Explain** specific issues if any, with file paths and line numbers

Structure your review as:
- **Rating:** PASS | MINOR_ISSUES | MAJOR_ISSUES
- **Summary:** One-paragraph assessment
- **Issues:** Bullet list of specific problems (if any)
- **Suggestions:** Concrete improvements

Be thorough but fair. MAJOR_ISSUES means the implementation is fundamentally broken or missing critical requirements."""
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_think_prompt(persona: Persona, project: Project, task: str) -> str:
    return _THINK.render(persona=persona, project=project, task=task, with_goals=True)


def build_build_prompt(project: Project, task: str, briefs: Sequence[Contribution]) -> str:
    return _BUILD.render(project=project, task=task, contributions=briefs, with_goals=True)


def build_iterate_prompt(
    project: Project,
    task: str,
    reviews: Sequence[Contribution],
    iteration: int,
) -> str:
    """Prompt for a fix cycle; ``reviews`` are the previous review phase's completed outputs."""
    return _ITERATE.render(project=project, task=task, contributions=reviews, iteration=iteration, with_goals=True)


def build_review_prompt(persona: Persona, project: Project, task: str) -> str:
    return _REVIEW.render(persona=persona, project=project, task=task, with_goals=False)
