import json
import signal
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

import anyio
import click

from warroom.lab.settings import WarRoomSettings, get_settings

T = TypeVar("T")


@click.group()
@click.option("--data-root", default=None, help="Lab data directory (default: from WARROOM_DATA_ROOT or ./data).")
@click.pass_context
def main(ctx: click.Context, data_root: str | None) -> None:
    """War Room - multi-persona think / build / review pipelines."""
    from warroom.lab.log import setup_logging

    settings = get_settings()
    if data_root is not None:
        settings = settings.model_copy(update={"data_root": data_root})
    setup_logging(settings.log_level)
    ctx.obj = settings


def _store(settings: WarRoomSettings):
    from warroom.lab.store import LocalLabStore

    return LocalLabStore(settings.data_root, settings.data_prefix)


def _call(fn: Callable[[], Awaitable[T]]) -> T:
    """Run an async manager call, turning lookup failures into CLI errors."""
    try:
        return anyio.run(fn)
    except LookupError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Personas
# ---------------------------------------------------------------------------


@main.group()
def personas() -> None:
    """Manage personas."""


@personas.command("list")
@click.pass_obj
def personas_list(settings: WarRoomSettings) -> None:
    """List personas by name."""
    from warroom.lab.managers.personas import list_personas

    store = _store(settings)
    for persona in _call(lambda: list_personas(store)):
        click.echo(f"{persona.icon} {persona.id}\t{persona.name} - {persona.role}")


@personas.command("templates")
def personas_templates() -> None:
    """List built-in persona templates."""
    from warroom.lab.templates import PERSONA_TEMPLATES

    for template in PERSONA_TEMPLATES:
        click.echo(f"{template.icon} {template.template_id}\t[{template.category}] {template.name}")


@personas.command("add-template")
@click.argument("template_id")
@click.pass_obj
def personas_add_template(settings: WarRoomSettings, template_id: str) -> None:
    """Create a persona from a built-in template."""
    from warroom.lab.managers.personas import create_from_template

    store = _store(settings)
    persona = _call(lambda: create_from_template(store, template_id))
    click.echo(persona.id)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@main.group()
def projects() -> None:
    """Manage projects."""


@projects.command("list")
@click.pass_obj
def projects_list(settings: WarRoomSettings) -> None:
    """List projects, most recently updated first."""
    from warroom.lab.managers.projects import list_projects

    store = _store(settings)
    for project in _call(lambda: list_projects(store)):
        click.echo(f"{project.id}\t{project.name} ({len(project.persona_ids)} personas)")


@projects.command("create")
@click.argument("name")
@click.option("--description", default="", help="What the project is about.")
@click.option("--goal", "goals", multiple=True, help="Project goal (repeatable).")
@click.option("--persona", "persona_ids", multiple=True, help="Persona ID to staff the project with (repeatable).")
@click.option("--working-directory", default=None, help="Directory the builder works in.")
@click.option("--repository", default=None, help="Repository URL.")
@click.pass_obj
def projects_create(
    settings: WarRoomSettings,
    name: str,
    description: str,
    goals: tuple[str, ...],
    persona_ids: tuple[str, ...],
    working_directory: str | None,
    repository: str | None,
) -> None:
    """Create a project."""
    from warroom.lab.managers.personas import get_persona
    from warroom.lab.managers.projects import create_project
    from warroom.lab.models import ProjectCreate

    store = _store(settings)
    body = ProjectCreate(
        name=name,
        description=description,
        goals=list(goals),
        persona_ids=list(persona_ids),
        working_directory=working_directory,
        repository=repository,
    )

    async def create():
        for persona_id in body.persona_ids:
            await get_persona(store, persona_id)
        return await create_project(store, body)

    project = _call(create)
    click.echo(project.id)


@projects.command("show")
@click.argument("project_id")
@click.pass_obj
def projects_show(settings: WarRoomSettings, project_id: str) -> None:
    """Show a project with its personas and pipeline summary."""
    from warroom.lab.managers.projects import load_project

    store = _store(settings)
    loaded = _call(lambda: load_project(store, project_id))
    click.echo(loaded.model_dump_json(indent=2))


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


@main.group()
def pipelines() -> None:
    """Inspect and delete stored pipelines."""


@pipelines.command("list")
@click.argument("project_id")
@click.pass_obj
def pipelines_list(settings: WarRoomSettings, project_id: str) -> None:
    """List a project's pipelines, newest first."""
    from warroom.lab.managers.pipelines import list_pipelines

    store = _store(settings)
    for pipeline in _call(lambda: list_pipelines(store, project_id)):
        click.echo(f"{pipeline.id}\t{pipeline.status}\t{pipeline.prompt[:60]}")


@pipelines.command("show")
@click.argument("project_id")
@click.argument("pipeline_id")
@click.pass_obj
def pipelines_show(settings: WarRoomSettings, project_id: str, pipeline_id: str) -> None:
    """Print a stored pipeline as JSON."""
    from warroom.lab.managers.pipelines import get_pipeline

    store = _store(settings)
    pipeline = _call(lambda: get_pipeline(store, project_id, pipeline_id))
    click.echo(pipeline.model_dump_json(indent=2))


@pipelines.command("delete")
@click.argument("project_id")
@click.argument("pipeline_id")
@click.pass_obj
def pipelines_delete(settings: WarRoomSettings, project_id: str, pipeline_id: str) -> None:
    """Delete one pipeline."""
    from warroom.lab.managers.pipelines import delete_pipeline

    store = _store(settings)
    _call(lambda: delete_pipeline(store, project_id, pipeline_id))
    click.echo(f"Deleted {pipeline_id}.")


@pipelines.command("clear")
@click.argument("project_id")
@click.confirmation_option(prompt="Delete every pipeline of this project?")
@click.pass_obj
def pipelines_clear(settings: WarRoomSettings, project_id: str) -> None:
    """Delete all pipelines of a project."""
    from warroom.lab.managers.pipelines import delete_all_pipelines

    store = _store(settings)
    deleted = _call(lambda: delete_all_pipelines(store, project_id))
    click.echo(f"Deleted {deleted} pipelines.")


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("project_id")
@click.argument("prompt")
@click.option("--max-iterations", default=None, type=click.IntRange(min=0), help="Fix-cycle budget.")
@click.option("--executor", "executor_path", default=None, help="Executor as module:attr (default: WARROOM_EXECUTOR).")
@click.pass_obj
def run(
    settings: WarRoomSettings,
    project_id: str,
    prompt: str,
    max_iterations: int | None,
    executor_path: str | None,
) -> None:
    """Run a pipeline, printing its events as JSON lines.

    Press Ctrl-C once to stop the pipeline; it still ends with a
    ``pipeline_cancelled`` event and a persisted record.
    """
    from warroom.lab.execution import load_executor

    executor_path = executor_path or settings.executor
    if not executor_path:
        raise click.UsageError("No executor configured. Pass --executor or set WARROOM_EXECUTOR.")
    executor = load_executor(executor_path)
    budget = settings.max_iterations if max_iterations is None else max_iterations

    pipeline = _call(lambda: _run_pipeline(settings, executor, project_id, prompt, budget))
    click.echo(f"Pipeline {pipeline.id} {pipeline.status}.", err=True)
    if pipeline.status != "completed":
        sys.exit(1)


async def _run_pipeline(settings: WarRoomSettings, executor, project_id: str, prompt: str, max_iterations: int):
    from warroom.lab.cancellation import CancellationToken
    from warroom.lab.execution import BufferedEventSink, run_pipeline
    from warroom.lab.managers.pipelines import create_pipeline
    from warroom.lab.managers.projects import load_project

    store = _store(settings)
    loaded = await load_project(store, project_id)
    pipeline = await create_pipeline(store, project_id, prompt, max_iterations=max_iterations)

    token = CancellationToken()
    sink = BufferedEventSink(settings.event_buffer_size)

    async with anyio.create_task_group() as tg:
        tg.start_soon(_cancel_on_interrupt, token)
        async with anyio.create_task_group() as printers:
            printers.start_soon(_print_events, sink)
            try:
                result = await run_pipeline(
                    store=store,
                    executor=executor,
                    project=loaded.project,
                    personas=loaded.personas,
                    pipeline=pipeline,
                    on_event=sink,
                    cancel_token=token,
                    settings=settings,
                )
            finally:
                sink.close()
        tg.cancel_scope.cancel()
    return result


async def _print_events(sink) -> None:
    async for event in sink:
        click.echo(json.dumps(event.to_wire(), ensure_ascii=False))


async def _cancel_on_interrupt(token) -> None:
    with anyio.open_signal_receiver(signal.SIGINT) as signals:
        async for _ in signals:
            if token.cancelled:
                click.echo("Already stopping...", err=True)
                continue
            click.echo("Stopping pipeline...", err=True)
            token.cancel()


if __name__ == "__main__":
    main()
