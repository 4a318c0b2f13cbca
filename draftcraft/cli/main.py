"""Main CLI entry point for DraftCraft."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from ..ai.ai_log import AILogBook
from ..ai.batch_generator import ChapterStatus
from ..ai.claude_client import ClaudeClient
from ..ai.draft_actions import DraftAction, action_choices
from ..ai.prompts import SUGGESTION_TYPES, SuggestionType
from ..config import Config
from ..core.diff import DiffKind, diff_stats, has_diff
from ..core.plot import PLOT_VARIANTS, PlotStructureType, structure_choices
from ..engine import DraftEngine
from ..exceptions import DraftCraftError
from ..io.history_store import JsonFileBackend, SnapshotStore
from ..io.project_loader import ProjectStore

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging once for the CLI."""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _history_dir(project_file: str, history_dir: Optional[str]) -> Path:
    return Path(history_dir) if history_dir else Path(project_file).resolve().parent / 'history'


def _open_engine(ctx, project_file: str, history_dir: Optional[str]) -> DraftEngine:
    """Build an engine over a project file and its history directory."""
    config: Config = ctx.obj['config']
    directory = _history_dir(project_file, history_dir)
    project_store = ProjectStore(project_file)
    project = project_store.load()
    snapshot_store = SnapshotStore(JsonFileBackend(directory), config.history_max_entries)
    client = ctx.obj.get('client') or ClaudeClient(config.ai)
    ai_log = AILogBook(config.ai_log_limit, log_file=directory / 'ai_log.jsonl')
    return DraftEngine(project, project_store, client, snapshot_store, config, ai_log)


def _format_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime('%Y-%m-%d %H:%M:%S')


def _fail(action: str, error: Exception) -> None:
    click.echo(f"❌ Error {action}: {error}", err=True)
    sys.exit(1)


history_dir_option = click.option(
    '--history-dir', type=click.Path(file_okay=False), help='History directory (default: ./history beside the project)'
)


@click.group()
@click.version_option(version="1.0.0")
@click.option('--config', 'config_file', type=click.Path(exists=True), help='YAML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write logs to this file')
@click.pass_context
def cli(ctx, config_file, verbose, log_file):
    """DraftCraft - chapter history and AI revision for novel drafts"""
    setup_logging(verbose, log_file)
    ctx.ensure_object(dict)
    if 'config' not in ctx.obj:
        ctx.obj['config'] = Config.from_file(config_file) if config_file else Config.from_env()


@cli.group()
def history():
    """Chapter history commands"""
    pass


@cli.group()
def ai():
    """AI revision commands"""
    pass


@cli.group()
def plot():
    """Plot structure commands"""
    pass


# History Commands
@history.command('list')
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@history_dir_option
@click.pass_context
def list_entries(ctx, project_file, chapter_id, history_dir):
    """List the snapshots of a chapter, newest first"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            return await engine.open_chapter(chapter_id)
        finally:
            await engine.close()

    try:
        entries = asyncio.run(run())
    except DraftCraftError as e:
        _fail("listing history", e)

    if not entries:
        click.echo("📭 No history entries")
        return
    click.echo(f"\n🕘 History for chapter {chapter_id} ({len(entries)} entries):")
    for entry in entries:
        click.echo(
            f"  {entry.id}  {_format_time(entry.timestamp_ms)}  "
            f"[{entry.type.value}] {entry.label} ({len(entry.content):,} chars)"
        )


@history.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.option('--label', help='Label for the snapshot')
@history_dir_option
@click.pass_context
def snapshot(ctx, project_file, chapter_id, label, history_dir):
    """Save a manual snapshot of the chapter draft"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            return await engine.snapshot(label)
        finally:
            await engine.close()

    try:
        entry = asyncio.run(run())
    except DraftCraftError as e:
        _fail("saving snapshot", e)
    click.echo(f"✅ Saved snapshot {entry.id} ({entry.label})")


@history.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.option('--entry', 'entry_id', help='Entry to compare (default: newest)')
@history_dir_option
@click.pass_context
def diff(ctx, project_file, chapter_id, entry_id, history_dir):
    """Show changes from a snapshot to the current draft"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            if entry_id and engine.history.select(chapter_id, entry_id) is None:
                raise DraftCraftError(f"History entry {entry_id} not found")
            return engine.diff()
        finally:
            await engine.close()

    try:
        segments = asyncio.run(run())
    except DraftCraftError as e:
        _fail("computing diff", e)

    if not has_diff(segments):
        click.echo("✅ No differences")
        return
    prefixes = {DiffKind.ADDED: '+ ', DiffKind.REMOVED: '- ', DiffKind.UNCHANGED: '  '}
    for segment in segments:
        for line in segment.text.splitlines():
            click.echo(f"{prefixes[segment.kind]}{line}")
    stats = diff_stats(segments)
    click.echo(f"\n📊 +{stats['added']} / -{stats['removed']} lines")


@history.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.argument('entry_id')
@history_dir_option
@click.pass_context
def restore(ctx, project_file, chapter_id, entry_id, history_dir):
    """Restore the chapter draft from a snapshot"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            if engine.history.get_entry(chapter_id, entry_id) is None:
                raise DraftCraftError(f"History entry {entry_id} not found")
            return await engine.restore(entry_id)
        finally:
            await engine.close()

    try:
        restored = asyncio.run(run())
    except DraftCraftError as e:
        _fail("restoring snapshot", e)
    if restored:
        click.echo(f"✅ Restored chapter {chapter_id} from {entry_id}")
    else:
        click.echo("ℹ️  The draft already matches that snapshot")


@history.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.argument('entry_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@history_dir_option
@click.pass_context
def delete(ctx, project_file, chapter_id, entry_id, yes, history_dir):
    """Delete a snapshot"""
    if not yes:
        click.confirm(f"Delete history entry {entry_id}?", abort=True)

    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            return await engine.delete_entry(entry_id)
        finally:
            await engine.close()

    try:
        deleted = asyncio.run(run())
    except DraftCraftError as e:
        _fail("deleting snapshot", e)
    if deleted:
        click.echo(f"🗑️  Deleted {entry_id}")
    else:
        click.echo(f"❌ History entry {entry_id} not found", err=True)
        sys.exit(1)


# AI Commands
@ai.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.option('--start', type=int, required=True, help='Selection start offset')
@click.option('--end', type=int, required=True, help='Selection end offset')
@click.option('--type', 'suggestion_type', type=click.Choice([t.value for t in SuggestionType]),
              default=SuggestionType.REWRITE.value, help='Kind of suggestion')
@click.option('--apply', 'apply_index', type=int, help='Apply suggestion N (1-based)')
@history_dir_option
@click.pass_context
def suggest(ctx, project_file, chapter_id, start, end, suggestion_type, apply_index, history_dir):
    """Get AI suggestions for a passage of a chapter"""
    kind = SuggestionType(suggestion_type)

    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            engine.select_text(start, end)
            suggestions = await engine.request_suggestions(kind)
            applied = None
            if apply_index is not None and suggestions:
                if not 1 <= apply_index <= len(suggestions):
                    raise DraftCraftError(f"There are only {len(suggestions)} suggestions")
                applied = suggestions[apply_index - 1]
                await engine.apply_suggestion(applied)
            return suggestions, applied, engine.suggestions.was_truncated
        finally:
            await engine.close()

    click.echo(f"🤖 Requesting {SUGGESTION_TYPES[kind].label} suggestions...")
    try:
        suggestions, applied, truncated = asyncio.run(run())
    except DraftCraftError as e:
        _fail("getting suggestions", e)

    if truncated:
        click.echo("⚠️  The selection was truncated before sending")
    if not suggestions:
        click.echo("ℹ️  Cancelled")
        return
    for number, suggestion in enumerate(suggestions, 1):
        click.echo(f"\n💡 {number}. {suggestion.title}")
        click.echo(suggestion.body)
    if applied is not None:
        click.echo(f"\n✅ Applied suggestion {apply_index}")


@ai.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@history_dir_option
@click.pass_context
def refine(ctx, project_file, chapter_id, history_dir):
    """Critique the chapter draft and revise it"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            return await engine.refine()
        finally:
            await engine.close()

    click.echo("🔍 Phase 1: critique, Phase 2: revision...")
    try:
        log = asyncio.run(run())
    except DraftCraftError as e:
        _fail("refining chapter", e)

    if log is None:
        click.echo("ℹ️  Cancelled")
        return
    click.echo(f"✅ Revised chapter {chapter_id}: {log.original_length:,} -> {log.revised_length:,} chars")
    click.echo(f"\n📝 {log.revision_summary}")
    for change in log.change_list:
        click.echo(f"  • {change}")


@ai.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('chapter_id')
@click.option('--action', type=click.Choice(action_choices()), default=DraftAction.IMPROVE.value,
              show_default=True, help='What to do with the chapter draft')
@history_dir_option
@click.pass_context
def draft(ctx, project_file, chapter_id, action, history_dir):
    """Generate, continue or rework the whole chapter draft"""
    draft_action = DraftAction(action)

    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            await engine.open_chapter(chapter_id)
            before = len(engine.draft)
            return before, await engine.run_action(draft_action)
        finally:
            await engine.close()

    click.echo(f"✍️  Running {draft_action.label} on chapter {chapter_id}...")
    try:
        before, text = asyncio.run(run())
    except DraftCraftError as e:
        _fail(f"running {draft_action.label}", e)

    if text is None:
        click.echo("ℹ️  Cancelled")
        return
    click.echo(f"✅ Chapter {chapter_id}: {before:,} -> {len(text):,} chars")


@ai.command('generate-all')
@click.argument('project_file', type=click.Path(exists=True))
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@history_dir_option
@click.pass_context
def generate_all(ctx, project_file, yes, history_dir):
    """Draft every chapter in a single AI request"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            engine.request_generate_all()
            count = len(engine.project.chapters)
            if not yes and not click.confirm(
                f"Generate drafts for all {count} chapters? Existing drafts will be overwritten."
            ):
                engine.batch.decline()
                return None, []
            result = await engine.confirm_generate_all()
            return result, list(engine.batch.progress)
        finally:
            await engine.close()

    try:
        result, progress = asyncio.run(run())
    except DraftCraftError as e:
        _fail("generating chapters", e)

    if result is None:
        click.echo("ℹ️  Nothing generated")
        return
    if result.cancelled:
        click.echo("ℹ️  Cancelled")
        return
    icons = {ChapterStatus.COMPLETED: '✅', ChapterStatus.ERROR: '⚠️ ', ChapterStatus.PENDING: '⏳',
             ChapterStatus.GENERATING: '⏳'}
    for item in progress:
        click.echo(f"  {icons[item.status]} {item.title or item.chapter_id}")
    click.echo(f"\n📚 Updated {len(result.updated)} of {len(progress)} chapters")


# Plot Commands
@plot.command()
@click.argument('project_file', type=click.Path(exists=True))
@click.pass_context
def show(ctx, project_file):
    """Show the plot outline of the active structure"""
    try:
        project = ProjectStore(project_file).load()
    except DraftCraftError as e:
        _fail("loading project", e)

    settings = project.plot
    active = settings.active
    done, total = active.progress()
    click.echo(f"\n🧭 Structure: {active.LABEL} ({done}/{total} fields)")
    for name, label in active.FIELD_LABELS.items():
        click.echo(f"  {label}: {getattr(active, name) or '-'}")


@plot.command('set-structure')
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('structure', type=click.Choice(structure_choices()))
@history_dir_option
@click.pass_context
def set_structure(ctx, project_file, structure, history_dir):
    """Switch the active plot structure"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            return await engine.plot.set_structure(PlotStructureType(structure))
        finally:
            await engine.close()

    try:
        changed = asyncio.run(run())
    except DraftCraftError as e:
        _fail("changing structure", e)
    label = PLOT_VARIANTS[PlotStructureType(structure)].LABEL
    click.echo(f"✅ Structure set to {label}" if changed else f"ℹ️  Structure is already {label}")


@plot.command('set-field')
@click.argument('project_file', type=click.Path(exists=True))
@click.argument('field_name')
@click.argument('value')
@history_dir_option
@click.pass_context
def set_field(ctx, project_file, field_name, value, history_dir):
    """Set a field of the active plot structure"""
    async def run():
        engine = _open_engine(ctx, project_file, history_dir)
        try:
            engine.plot.update_field(field_name, value)
            return engine.plot.progress()
        finally:
            await engine.close()

    try:
        done, total = asyncio.run(run())
    except (KeyError, DraftCraftError) as e:
        _fail("setting field", e)
    click.echo(f"✅ Updated {field_name} ({done}/{total} fields)")


if __name__ == '__main__':
    cli()
