from pathlib import Path

import pytest
import yaml

from locsmith.core.config import (
    AtlasConfig,
    DocumentConfig,
    FallbackFontConfig,
    LanguageConfig,
    LocsmithConfig,
)
from locsmith.core.exceptions import FontEngineError, PipelineError
from locsmith.core.resolution import TableCache, resolve_identity
from locsmith.pipeline import LocalisationImport, PipelineLogger, StepResult, audit_generated_atlases
from locsmith.sheets import SheetData, SpreadsheetData, StaticFetch


HEADER = ["ID", "English", "Spanish"]
ROWS = [HEADER, ["Hello World", "Hello", "Hola"], ["Year", "Year", "Año"]]


def _config(tmp_path: Path, **extra) -> LocsmithConfig:
    return LocsmithConfig(
        first_language_column=2,
        ids_module=tmp_path / "generated" / "loc_ids.py",
        documents=[
            DocumentConfig(document_id="doc-main", canonical_path=tmp_path / "tables" / "Master.tsv")
        ],
        languages=[
            LanguageConfig(name="English"),
            LanguageConfig(name="Spanish", culture_id="es-ES", font=tmp_path / "fonts" / "Body.ttf"),
        ],
        **extra,
    )


def _static(rows: list[list[str]]):
    def _factory(document: DocumentConfig) -> StaticFetch:
        return StaticFetch(SpreadsheetData(document.document_id, [SheetData("Main", rows)]))

    return _factory


class _PendingFetch:
    def __init__(self, rows: list[list[str]]) -> None:
        self.data = SpreadsheetData("doc-main", [SheetData("Main", rows)])
        self.ready = False
        self.failed = False

    @property
    def progress(self) -> float:
        if self.failed:
            return -1.0
        return 1.0 if self.ready else 0.5

    @property
    def is_completed(self) -> bool:
        return self.ready or self.failed

    @property
    def has_failed(self) -> bool:
        return self.failed

    @property
    def error(self) -> str | None:
        return "HTTP 500" if self.failed else None

    def result(self) -> SpreadsheetData:
        return self.data


def test_import_exports_tables_and_reloads_cache(tmp_path: Path) -> None:
    cache = TableCache()
    outcomes: list[bool] = []
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=_static(ROWS),
        cache=cache,
        generate_fonts=False,
        logger=PipelineLogger(),
        on_finished=outcomes.append,
    )

    assert [step.name for step in run.pipeline.steps] == [
        "fetch",
        "parse",
        "export",
        "regenerate_ids",
    ]
    assert run.run(poll_interval=0) is StepResult.SUCCESS
    assert outcomes == [True]
    assert run.ids_changed
    assert (tmp_path / "tables" / "Master.tsv").read_text(encoding="utf-8").startswith(
        "ID\tENGLISH\tSpanish\n"
    )
    assert "TABLE_FILES" in (tmp_path / "generated" / "loc_ids.py").read_text(encoding="utf-8")
    assert resolve_identity("Hello World", "Spanish", cache=cache).text == "Hola"
    assert cache.snapshot.generated is not None
    assert cache.snapshot.generated.table_files == {"Master": "../tables/Master.tsv"}


def test_second_run_leaves_identifier_module_untouched(tmp_path: Path) -> None:
    config = _config(tmp_path)
    for expected in (True, False):
        run = LocalisationImport(
            config, fetch_factory=_static(ROWS), cache=TableCache(), generate_fonts=False
        )
        run.run(poll_interval=0)
        assert run.ids_changed is expected


def test_parse_errors_stop_before_export(tmp_path: Path) -> None:
    outcomes: list[bool] = []
    rows = [HEADER, ["Key", "One", "Uno"], ["Key", "Two", "Dos"]]
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=_static(rows),
        cache=TableCache(),
        generate_fonts=False,
        on_finished=outcomes.append,
    )

    assert run.run(poll_interval=0) is StepResult.FAILED
    assert [step.status for step in run.pipeline.steps] == [
        StepResult.SUCCESS,
        StepResult.FAILED,
        None,
        None,
    ]
    assert outcomes == [False]
    assert "Parsing failed with 1 error(s)." in run.messages
    assert not (tmp_path / "tables" / "Master.tsv").exists()


def test_missing_translation_fails_export(tmp_path: Path) -> None:
    rows = [HEADER, ["Key", "One", ""]]
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=_static(rows),
        cache=TableCache(),
        generate_fonts=False,
        raise_on_failure=True,
    )

    with pytest.raises(PipelineError, match="failed at step 'export'") as excinfo:
        run.run(poll_interval=0)
    assert "Export failed; no table was written." in excinfo.value.messages
    assert not (tmp_path / "tables" / "Master.tsv").exists()


def test_fetch_step_waits_for_pending_documents(tmp_path: Path) -> None:
    handle = _PendingFetch(ROWS)
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=lambda document: handle,
        cache=TableCache(),
        generate_fonts=False,
    )

    assert run.tick() is StepResult.RUNNING
    assert run.pipeline.steps[0].status is StepResult.RUNNING
    assert run.pipeline.progress == pytest.approx(0.5 / 4)

    handle.ready = True
    run.tick()
    assert run.pipeline.steps[0].status is StepResult.SUCCESS
    assert run.run(poll_interval=0) is StepResult.SUCCESS


def test_failed_fetch_reports_the_error(tmp_path: Path) -> None:
    handle = _PendingFetch(ROWS)
    handle.failed = True
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=lambda document: handle,
        cache=TableCache(),
        generate_fonts=False,
    )

    assert run.run(poll_interval=0) is StepResult.FAILED
    assert run.pipeline.steps[0].messages == ["HTTP 500", "1 document(s) could not be fetched."]


def test_dump_writes_fetched_documents(tmp_path: Path) -> None:
    run = LocalisationImport(
        _config(tmp_path),
        fetch_factory=_static(ROWS),
        cache=TableCache(),
        generate_fonts=False,
        dump_dir=tmp_path / "dump",
    )
    run.run(poll_interval=0)

    dumped = yaml.safe_load((tmp_path / "dump" / "Master.yaml").read_text(encoding="utf-8"))
    assert dumped["document_id"] == "doc-main"
    assert dumped["sheets"][0]["cells"][2] == ["Year", "Year", "Año"]


def test_atlases_and_fallback_glyphs_are_generated(tmp_path: Path, fake_engine) -> None:

    fake_engine.coverage["Body"] = frozenset(range(0x20, 0x7F)) | {ord("€"), ord("$")}
    fake_engine.coverage["Extra"] = frozenset(range(0x20, 0x10000))
    config = _config(
        tmp_path,
        atlas=AtlasConfig(
            enabled=True, output_dir=tmp_path / "atlases", sizes=[256], max_font_size=20
        ),
        fallback_fonts=[FallbackFontConfig(path=tmp_path / "fonts" / "Extra.ttf")],
    )
    run = LocalisationImport(
        config, fetch_factory=_static(ROWS), engine=fake_engine, cache=TableCache()
    )

    assert [step.name for step in run.pipeline.steps][4:] == [
        "initialise_font_engine",
        "generate_atlas[body]",
        "generate_fallback_glyphs",
    ]
    assert run.run(poll_interval=0) is StepResult.SUCCESS
    assert fake_engine.initialised and fake_engine.destroyed
    assert ord("ñ") in run.missing and ord("Ñ") in run.missing
    assert run.missing[ord("ñ")] == "Year"
    assert (tmp_path / "atlases" / "body.json").exists()
    assert (tmp_path / "atlases" / "fallback-extra.json").exists()
    assert "Language [English] has no font; no atlas will be generated." in run.messages
    assert "Missing characters successfully integrated into fallback glyphs." in run.messages
    assert audit_generated_atlases(config) == []


def test_missing_glyphs_without_fallback_fonts_fail(tmp_path: Path, fake_engine) -> None:

    fake_engine.coverage["Body"] = frozenset(range(0x20, 0x7F))
    config = _config(
        tmp_path,
        atlas=AtlasConfig(enabled=True, output_dir=tmp_path / "atlases", sizes=[256], max_font_size=16),
    )
    run = LocalisationImport(
        config, fetch_factory=_static(ROWS), engine=fake_engine, cache=TableCache()
    )

    assert run.run(poll_interval=0) is StepResult.FAILED
    assert run.pipeline.steps[-1].status is StepResult.FAILED
    assert "Characters are missing, but no fallback fonts were configured." in run.messages
    assert fake_engine.destroyed
    problems = audit_generated_atlases(config)
    assert any("U+00F1 'ñ' required by [Year]" in problem for problem in problems)


def test_unreadable_fallback_font_does_not_fail_the_run(tmp_path: Path, fake_engine) -> None:
    fake_engine.coverage["Body"] = frozenset(range(0x20, 0x7F)) | {ord("€"), ord("$")}
    fake_engine.coverage["Good"] = frozenset(range(0x20, 0x10000))
    fake_engine.broken = {"Broken"}
    config = _config(
        tmp_path,
        atlas=AtlasConfig(
            enabled=True, output_dir=tmp_path / "atlases", sizes=[256], max_font_size=20
        ),
        fallback_fonts=[
            FallbackFontConfig(path=tmp_path / "fonts" / "Broken.ttf"),
            FallbackFontConfig(path=tmp_path / "fonts" / "Good.ttf"),
        ],
    )
    run = LocalisationImport(
        config, fetch_factory=_static(ROWS), engine=fake_engine, cache=TableCache()
    )

    assert run.run(poll_interval=0) is StepResult.SUCCESS
    assert run.pipeline.steps[-1].status is StepResult.SUCCESS
    assert any(
        message.startswith("FallbackFont [Broken] could not be loaded") for message in run.messages
    )
    assert (tmp_path / "atlases" / "fallback-good.json").exists()
    assert not (tmp_path / "atlases" / "fallback-broken.json").exists()


def test_atlas_steps_require_an_initialised_engine(tmp_path: Path, fake_engine) -> None:
    config = _config(
        tmp_path,
        atlas=AtlasConfig(enabled=True, output_dir=tmp_path / "atlases", sizes=[256]),
        fallback_fonts=[FallbackFontConfig(path=tmp_path / "fonts" / "Extra.ttf")],
    )
    run = LocalisationImport(
        config, fetch_factory=_static(ROWS), engine=fake_engine, cache=TableCache()
    )
    steps = {step.name: step for step in run.pipeline.steps}

    for name in ("generate_atlas[body]", "generate_fallback_glyphs"):
        run.missing = {ord("ñ"): "Year"}
        with pytest.raises(FontEngineError, match="has not been initialised"):
            steps[name].action(steps[name])
    assert fake_engine.packs == []
