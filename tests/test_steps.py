import pytest

from locsmith.core.exceptions import DataIntegrityError
from locsmith.pipeline import PipelineStep, StepPipeline, StepResult


def _step(name: str, *results: StepResult) -> PipelineStep:
    queue = list(results)

    def _action(step: PipelineStep) -> StepResult:
        step.note(f"{name} ran")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return PipelineStep(name, _action)


def test_failed_step_halts_the_run() -> None:
    calls: list[str] = []
    steps = [
        _step("first", StepResult.SUCCESS),
        _step("second", StepResult.FAILED),
        _step("third", StepResult.SUCCESS),
    ]
    pipeline = StepPipeline(
        steps,
        cleanup=lambda: calls.append("cleanup"),
        on_finished=lambda success: calls.append(f"finished:{success}"),
    )

    assert pipeline.run_to_completion(poll_interval=0) is StepResult.FAILED
    assert [step.status for step in steps] == [StepResult.SUCCESS, StepResult.FAILED, None]
    assert calls == ["cleanup", "finished:False"]
    assert pipeline.log == ["first ran", "second ran"]
    assert pipeline.tick() is StepResult.FAILED
    assert steps[2].messages == []


def test_running_step_is_polled_again() -> None:
    waiting = _step("fetch", StepResult.RUNNING, StepResult.RUNNING, StepResult.SUCCESS)
    pipeline = StepPipeline([waiting, _step("after", StepResult.SUCCESS)])

    assert pipeline.tick() is StepResult.RUNNING
    assert waiting.status is StepResult.RUNNING
    assert pipeline.current_step is waiting
    pipeline.tick()
    assert pipeline.tick() is StepResult.RUNNING
    assert waiting.status is StepResult.SUCCESS
    assert pipeline.progress == pytest.approx(0.5)
    assert pipeline.tick() is StepResult.SUCCESS
    assert pipeline.finished
    assert pipeline.progress == 1.0


def test_domain_errors_fail_the_step() -> None:
    def _explode(step: PipelineStep) -> StepResult:
        raise DataIntegrityError("Localisation ID 'Key' already exists")

    step = PipelineStep("regenerate_ids", _explode)
    pipeline = StepPipeline([step])

    assert pipeline.tick() is StepResult.FAILED
    assert step.messages == ["Localisation ID 'Key' already exists"]


def test_unexpected_errors_finish_and_propagate() -> None:
    outcomes: list[bool] = []

    def _explode(step: PipelineStep) -> StepResult:
        raise KeyError("boom")

    pipeline = StepPipeline([PipelineStep("broken", _explode)], on_finished=outcomes.append)

    with pytest.raises(KeyError):
        pipeline.tick()
    assert pipeline.finished
    assert pipeline.status is StepResult.FAILED
    assert outcomes == [False]


def test_progress_callback_reaches_completion() -> None:
    seen: list[float] = []
    pipeline = StepPipeline([_step("a", StepResult.SUCCESS), _step("b", StepResult.SUCCESS)])

    pipeline.run_to_completion(poll_interval=0, progress=seen.append)

    assert seen == [0.5, 1.0]


def test_empty_pipeline_succeeds() -> None:
    outcomes: list[bool] = []
    assert StepPipeline([], on_finished=outcomes.append).tick() is StepResult.SUCCESS
    assert outcomes == [True]
