"""The localisation import run: fetch, parse, export, regenerate, and atlases."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import os
from pathlib import Path

from slugify import slugify
import yaml

from locsmith.codegen import TableIds, collect_entries, write_identifier_module
from locsmith.core.config import DocumentConfig, LanguageConfig, LocsmithConfig
from locsmith.core.diagnostics import format_event_message
from locsmith.core.exceptions import ExportError, FontEngineError, PipelineError
from locsmith.core.resolution import FileTableSource, TableCache, get_table_cache
from locsmith.core.tables import ENGLISH
from locsmith.fonts import (
    AtlasAsset,
    FallbackChain,
    FallbackFont,
    FileFontHandle,
    FontEngine,
    PillowFontEngine,
    RenderMode,
    RequiredCharacters,
    audit_atlas_coverage,
    collect_required_characters,
    search_atlas,
)
from locsmith.sheets import (
    ExportedEntry,
    FetchHandle,
    ParsedDocument,
    SheetsApiFetch,
    SpreadsheetData,
    SpreadsheetParser,
    StaticFetch,
    aggregate_progress,
    export_table,
    read_exported_entries,
    render_table,
)

from .logging import PipelineLogger
from .steps import PipelineStep, StepPipeline, StepResult


FetchFactory = Callable[[DocumentConfig], FetchHandle]


def online_fetch_factory(config: LocsmithConfig) -> FetchFactory:
    """Start one Sheets API request per document."""

    def _factory(document: DocumentConfig) -> FetchHandle:
        return SheetsApiFetch(
            document.document_id,
            api_key=config.fetch.api_key(),
            token=config.fetch.token(),
            timeout=config.fetch.timeout,
            base_url=config.fetch.base_url,
        ).start()

    return _factory


def offline_fetch_factory(document: DocumentConfig) -> FetchHandle:
    """Reuse the payload cached by the last successful fetch."""
    return StaticFetch.from_cache(document.document_id)


@dataclass(slots=True)
class AtlasGroup:
    """Languages rendered from the same font asset."""

    font: Path
    render_mode: RenderMode
    languages: list[LanguageConfig] = field(default_factory=list)

    @property
    def name(self) -> str:
        suffix = "" if self.render_mode is RenderMode.SMOOTH else f"-{self.render_mode.value}"
        return f"{slugify(self.font.stem)}{suffix}"

    @property
    def min_font_size(self) -> int:
        return max(language.min_font_size for language in self.languages)

    @property
    def padding(self) -> int:
        return max(language.padding for language in self.languages)


def atlas_groups(languages: Iterable[LanguageConfig]) -> list[AtlasGroup]:
    """Group languages sharing a font and render mode, in declaration order."""
    groups: dict[tuple[Path, RenderMode], AtlasGroup] = {}
    for language in languages:
        if language.font is None:
            continue
        key = (language.font, language.render_mode)
        group = groups.get(key)
        if group is None:
            group = groups[key] = AtlasGroup(font=language.font, render_mode=language.render_mode)
        group.languages.append(language)
    return list(groups.values())


def language_text(entry: ExportedEntry, language: str) -> str:
    if language.casefold() == ENGLISH.casefold():
        return entry.english
    return entry.text_for(language)


def required_characters(
    group: AtlasGroup, entries: dict[str, list[ExportedEntry]]
) -> RequiredCharacters:
    """Union of the characters every language of ``group`` needs."""
    required = RequiredCharacters()
    for language in group.languages:
        strings = [
            (entry.identity, language_text(entry, language.name))
            for table_entries in entries.values()
            for entry in table_entries
        ]
        required.update(collect_required_characters(strings, language.culture_id))
    return required


def load_exported_entries(config: LocsmithConfig) -> dict[str, list[ExportedEntry]]:
    return {
        name: read_exported_entries(document.canonical_path)
        for name, document in config.tables()
        if document.canonical_path.exists()
    }


def _relative_source(path: Path, anchor: Path) -> str:
    return Path(os.path.relpath(path, anchor)).as_posix()


class LocalisationImport:
    """Build and drive the step pipeline for one generation run."""

    def __init__(
        self,
        config: LocsmithConfig,
        *,
        fetch_factory: FetchFactory | None = None,
        engine: FontEngine | None = None,
        cache: TableCache | None = None,
        logger: PipelineLogger | None = None,
        generate_fonts: bool | None = None,
        dump_dir: Path | None = None,
        raise_on_failure: bool = False,
        on_finished: Callable[[bool], None] | None = None,
    ) -> None:
        self.config = config
        self.fetch_factory = fetch_factory or online_fetch_factory(config)
        self.engine = engine
        self.cache = cache
        self.logger = logger or PipelineLogger()
        self.generate_fonts = config.atlas.enabled if generate_fonts is None else generate_fonts
        self.dump_dir = dump_dir
        self.raise_on_failure = raise_on_failure
        self._on_finished = on_finished

        self.handles: list[FetchHandle] = []
        self.documents: list[SpreadsheetData] = []
        self.parsed: list[ParsedDocument] = []
        self.entries: dict[str, list[ExportedEntry]] = {}
        self.assets: list[AtlasAsset] = []
        self.missing: dict[int, str] = {}
        self.ids_changed = False
        self._engine_ready = False
        self.pipeline = StepPipeline(
            self.build_steps(), on_finished=self._finished, cleanup=self._cleanup
        )

    def build_steps(self) -> list[PipelineStep]:
        """Return the ordered step list; atlas steps only when fonts are enabled."""
        steps = [
            PipelineStep("fetch", self._fetch, "Fetch the remote documents"),
            PipelineStep("parse", self._parse, "Parse and sanitise every sheet"),
            PipelineStep("export", self._export, "Write the canonical tables"),
            PipelineStep("regenerate_ids", self._regenerate_ids, "Regenerate the identifier module"),
        ]
        if not self.generate_fonts:
            return steps
        steps.append(
            PipelineStep("initialise_font_engine", self._initialise_engine, "Start the font engine")
        )
        for group in atlas_groups(self.config.languages):
            steps.append(
                PipelineStep(
                    f"generate_atlas[{group.name}]",
                    self._atlas_step(group),
                    f"Generate the glyph atlas for {', '.join(lang.name for lang in group.languages)}",
                )
            )
        steps.append(
            PipelineStep("generate_fallback_glyphs", self._fallback, "Add missing glyphs to fallbacks")
        )
        return steps

    @property
    def status(self) -> StepResult:
        return self.pipeline.status

    @property
    def messages(self) -> list[str]:
        return self.pipeline.log

    def tick(self) -> StepResult:
        result = self.pipeline.tick()
        self._raise_if_failed()
        return result

    def run(
        self,
        *,
        poll_interval: float = 0.05,
        progress: Callable[[float], None] | None = None,
    ) -> StepResult:
        """Run every step to completion (headless use)."""
        result = self.pipeline.run_to_completion(poll_interval=poll_interval, progress=progress)
        self._raise_if_failed()
        return result

    def _raise_if_failed(self) -> None:
        if self.raise_on_failure and self.pipeline.status is StepResult.FAILED:
            step = next(
                (item for item in self.pipeline.steps if item.status is StepResult.FAILED), None
            )
            name = step.name if step is not None else "unknown"
            raise PipelineError(f"Localisation import failed at step '{name}'.", self.messages)

    def _fail(self, step: PipelineStep, message: str) -> StepResult:
        step.note(message)
        self.logger.error(message)
        return StepResult.FAILED

    def _fetch(self, step: PipelineStep) -> StepResult:
        if not self.handles:
            self.handles = [self.fetch_factory(document) for _, document in self.config.tables()]
            self.logger.info("Fetching %d document(s)", len(self.handles))
        step.progress = aggregate_progress(self.handles)
        failed = [handle for handle in self.handles if handle.has_failed]
        if failed:
            for handle in failed:
                step.note(handle.error or "Fetch failed.")
            return self._fail(step, f"{len(failed)} document(s) could not be fetched.")
        if not all(handle.is_completed for handle in self.handles):
            return StepResult.RUNNING
        self.documents = [handle.result() for handle in self.handles]
        if self.dump_dir is not None:
            self._dump(self.dump_dir)
        return StepResult.SUCCESS

    def _dump(self, target: Path) -> None:
        target.mkdir(parents=True, exist_ok=True)
        for (name, _), document in zip(self.config.tables(), self.documents):
            path = target / f"{name}.yaml"
            with path.open("w", encoding="utf-8") as handle:
                yaml.safe_dump(document.to_mapping(), handle, allow_unicode=True, sort_keys=False)
            self.logger.debug("Dumped %s to %s", name, path)

    def _parse(self, step: PipelineStep) -> StepResult:
        parser = SpreadsheetParser(
            self.config.foreign_languages,
            first_language_column=self.config.first_language_column,
        )
        self.parsed = [parser.parse(document) for document in self.documents]
        errors = 0
        for parsed in self.parsed:
            for warning in parsed.warnings:
                step.note(warning)
                self.logger.warning(warning)
            for error in parsed.errors:
                step.note(error)
                self.logger.error(error)
            errors += len(parsed.errors)
        if errors:
            return self._fail(step, f"Parsing failed with {errors} error(s).")
        self.logger.info(
            "Parsed %d identifier(s)", sum(len(parsed.entries) for parsed in self.parsed)
        )
        return StepResult.SUCCESS

    def _export(self, step: PipelineStep) -> StepResult:
        problems: list[str] = []
        for parsed in self.parsed:
            try:
                render_table(parsed)
            except ExportError as exc:
                problems.append(str(exc))
        if problems:
            for problem in problems:
                step.note(problem)
                self.logger.error(problem)
            return self._fail(step, "Export failed; no table was written.")
        for (name, document), parsed in zip(self.config.tables(), self.parsed):
            export_table(parsed, document.canonical_path)
            self.logger.info("Exported table [%s] to %s", name, document.canonical_path)
        return StepResult.SUCCESS

    def _regenerate_ids(self, step: PipelineStep) -> StepResult:
        anchor = self.config.ids_module.parent
        tables = []
        for name, document in self.config.tables():
            text = document.canonical_path.read_text(encoding="utf-8")
            tables.append(
                TableIds(
                    name=name,
                    entries=collect_entries(name, text),
                    source_file=_relative_source(document.canonical_path, anchor),
                )
            )
        self.ids_changed = write_identifier_module(self.config.ids_module, tables)
        state = "updated" if self.ids_changed else "unchanged"
        step.note(f"Identifier module {self.config.ids_module} {state}.")
        self.logger.info("Identifier module %s %s", self.config.ids_module, state)
        return StepResult.SUCCESS

    def _initialise_engine(self, step: PipelineStep) -> StepResult:
        if self.engine is None:
            self.engine = PillowFontEngine()
        self.engine.initialise()
        self._engine_ready = True
        self.entries = load_exported_entries(self.config)
        for language in self.config.languages:
            if language.font is None:
                message = f"Language [{language.name}] has no font; no atlas will be generated."
                step.note(message)
                self.logger.warning(message)
        return StepResult.SUCCESS

    def _ready_engine(self) -> FontEngine:
        if self.engine is None or not self._engine_ready:
            raise FontEngineError("The font engine has not been initialised.")
        return self.engine

    def _atlas_step(self, group: AtlasGroup) -> Callable[[PipelineStep], StepResult]:
        def _action(step: PipelineStep) -> StepResult:
            engine = self._ready_engine()
            required = required_characters(group, self.entries)
            font = FileFontHandle(group.font)
            result = search_atlas(
                engine,
                font,
                required.codepoints,
                min_font_size=group.min_font_size,
                padding=group.padding,
                render_mode=group.render_mode,
                sizes=self.config.atlas.sizes,
                max_font_size=self.config.atlas.max_font_size,
            )
            asset = engine.materialise(
                font,
                result.attempt,
                render_mode=group.render_mode,
                padding=group.padding,
                output_dir=self.config.atlas.output_dir,
                name=group.name,
            )
            self.assets.append(asset)
            message = format_event_message(
                "atlas_generated",
                {
                    "languages": [language.name for language in group.languages],
                    "font_size": result.font_size,
                    "atlas_width": result.atlas_width,
                    "atlas_height": result.atlas_height,
                    "render_mode": group.render_mode.value,
                },
            )
            if message:
                step.note(message)
                self.logger.info(message)
            for codepoint in result.missing:
                self.missing.setdefault(codepoint, required.owners.get(codepoint, ""))
            if result.missing:
                self.logger.warning(
                    "%d character(s) did not fit in the %s atlas", len(result.missing), group.name
                )
            return StepResult.SUCCESS

        return _action

    def _fallback(self, step: PipelineStep) -> StepResult:
        if not self.missing:
            step.note("No missing characters.")
            return StepResult.SUCCESS
        if not self.config.fallback_fonts:
            return self._fail(
                step, "Characters are missing, but no fallback fonts were configured."
            )
        engine = self._ready_engine()
        chain = FallbackChain(
            [
                FallbackFont(
                    handle=FileFontHandle(font.path, font.name or ""),
                    font_size=font.font_size,
                    atlas_width=font.atlas_width,
                    atlas_height=font.atlas_height,
                    padding=font.padding,
                    default_coverage=font.default_coverage,
                )
                for font in self.config.fallback_fonts
            ],
            engine,
        )
        report = chain.add_missing(self.missing, self.missing)
        for warning in report.warnings:
            step.note(warning)
            self.logger.warning(warning)
        self.assets.extend(chain.materialise(self.config.atlas.output_dir))
        if report.complete:
            message = "Missing characters successfully integrated into fallback glyphs."
        else:
            message = f"{len(report.unresolved)} character(s) have no glyph in any font."
        step.note(message)
        self.logger.info(message)
        return StepResult.SUCCESS

    def _cleanup(self) -> None:
        if self._engine_ready and self.engine is not None:
            self.engine.destroy()
            self._engine_ready = False

    def _finished(self, success: bool) -> None:
        try:
            if success:
                self._reload_cache()
                self.logger.info("Localisation import finished.")
            else:
                self.logger.error("Localisation import failed.")
        finally:
            if self._on_finished is not None:
                self._on_finished(success)

    def _reload_cache(self) -> None:
        cache = self.cache or get_table_cache()
        cache.configure(
            [
                FileTableSource(name, document.canonical_path)
                for name, document in self.config.tables()
            ],
            languages=self.config.language_names,
            generated=self.config.ids_module,
            master=self.config.master_table,
        )
        cache.load()


def audit_generated_atlases(config: LocsmithConfig) -> list[str]:
    """Check every generated atlas against the characters its languages need."""
    entries = load_exported_entries(config)
    output_dir = config.atlas.output_dir
    fallback_pages = sorted(output_dir.glob("fallback-*.json")) if output_dir.exists() else []
    problems: list[str] = []
    for group in atlas_groups(config.languages):
        page = output_dir / f"{group.name}.json"
        if not page.exists():
            problems.append(f"Atlas [{group.name}] has not been generated.")
            continue
        for language in group.languages:
            single = AtlasGroup(font=group.font, render_mode=group.render_mode, languages=[language])
            problems.extend(
                audit_atlas_coverage(
                    language.name, required_characters(single, entries), [page, *fallback_pages]
                )
            )
    return problems


__all__ = [
    "AtlasGroup",
    "FetchFactory",
    "LocalisationImport",
    "atlas_groups",
    "audit_generated_atlases",
    "language_text",
    "load_exported_entries",
    "offline_fetch_factory",
    "online_fetch_factory",
    "required_characters",
]
