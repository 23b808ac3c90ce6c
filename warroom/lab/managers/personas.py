"""Persona CRUD operations."""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from warroom.lab.managers import generate_slug
from warroom.lab.models.lab import Persona, PersonaCreate, utcnow
from warroom.lab.store.base import LabStore
from warroom.lab.templates import get_template


class PersonaNotFoundError(LookupError):
    """Raised when a persona is not found."""


async def create_persona(store: LabStore, body: PersonaCreate) -> Persona:
    """Create a persona with an id slugged from its name."""
    persona_id = generate_slug(body.name, await store.list_persona_ids())
    data = body.model_dump(exclude={"icon"})
    persona = Persona(id=persona_id, icon=body.icon or "🤖", **data)
    await store.write_persona(persona)
    logger.info("Created persona {!r} ({})", persona.name, persona_id)
    return persona


async def create_from_template(store: LabStore, template_id: str) -> Persona:
    """Instantiate a built-in template.  Raises ``UnknownTemplateError``."""
    template = get_template(template_id)
    body = PersonaCreate.model_validate(template.model_dump(exclude={"template_id", "category"}))
    return await create_persona(store, body)


async def get_persona(store: LabStore, persona_id: str) -> Persona:
    """Get a persona by ID.  Raises ``PersonaNotFoundError`` if missing."""
    try:
        return await store.read_persona(persona_id)
    except FileNotFoundError:
        raise PersonaNotFoundError(persona_id) from None


async def list_personas(store: LabStore) -> list[Persona]:
    """All readable personas, ordered by name.  Corrupt records are skipped."""
    personas: list[Persona] = []
    for persona_id in await store.list_persona_ids():
        try:
            personas.append(await store.read_persona(persona_id))
        except (FileNotFoundError, ValidationError):
            logger.warning("Skipping unreadable persona {}", persona_id)
    return sorted(personas, key=lambda p: p.name.lower())


async def save_persona(store: LabStore, persona: Persona) -> Persona:
    persona.updated_at = utcnow()
    await store.write_persona(persona)
    return persona


async def delete_persona(store: LabStore, persona_id: str) -> None:
    """Delete a persona.  Raises ``PersonaNotFoundError`` if missing."""
    if not await store.delete_persona(persona_id):
        raise PersonaNotFoundError(persona_id)
    logger.info("Deleted persona {}", persona_id)


async def resolve_personas(store: LabStore, persona_ids: list[str]) -> list[Persona]:
    """Resolve ids in order, silently dropping ones that no longer exist."""
    personas: list[Persona] = []
    for persona_id in persona_ids:
        try:
            personas.append(await store.read_persona(persona_id))
        except FileNotFoundError:
            logger.debug("Persona {} no longer exists", persona_id)
    return personas
