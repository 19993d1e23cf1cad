"""
Online and print pipelines.

Each page (online) or spread (print) is one task on a thread pool. Pillow
releases the GIL while decoding, resampling and encoding, so threads give
real parallelism here. The pool is always drained before a pipeline returns.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import PageGeometry
from .manifest import ManifestRecorder
from .pages import PAGES_DIR_NAME, discover_pages
from .raster import load_image, save_image
from .transforms import (
    ONLINE_WIDTH,
    composite_spread,
    crop_to_trim,
    resize_to_width,
    spread_name,
    spread_pairs,
)
from .utils import LayoutError, MissingInputError, UserError, recreate_dir


ONLINE_DIR_NAME = "online"
PRINT_DIR_NAME = "print"


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one page or spread task."""

    action: str
    status: str
    output: str
    inputs: Tuple[str, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "error"


def _record(recorder: ManifestRecorder, outcome: TaskOutcome) -> TaskOutcome:
    details: Dict[str, Any] = {"output": outcome.output, "inputs": list(outcome.inputs)}
    if outcome.error is not None:
        details["error"] = outcome.error
    recorder.add_action(action=outcome.action, status=outcome.status, **details)
    return outcome


def pool_size(workers: Optional[int] = None) -> int:
    """Thread count for a pipeline pool: `workers`, else one per CPU."""

    return workers or os.cpu_count() or 1


def run_tasks(
    fn: Callable[..., TaskOutcome],
    jobs: Sequence[Tuple[Any, ...]],
    action: str,
    recorder: ManifestRecorder,
    workers: Optional[int] = None,
) -> List[TaskOutcome]:
    """
    Run fn(*job) for every job concurrently and wait for all of them.

    Outcomes come back in job order. Unexpected task exceptions are logged,
    recorded, and re-raised as one UserError once the pool has drained.
    """

    if not jobs:
        return []

    outcomes: List[Optional[TaskOutcome]] = [None] * len(jobs)
    failures: Dict[int, str] = {}

    with ThreadPoolExecutor(max_workers=pool_size(workers), thread_name_prefix="comic-creator") as pool:
        futures = {pool.submit(fn, *job): index for index, job in enumerate(jobs)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcomes[index] = future.result()
            except Exception as exc:
                message = f"{action} task {index} failed: {exc}"
                recorder.log(message, level="error")
                failures[index] = message
                outcomes[index] = _record(
                    recorder,
                    TaskOutcome(action=action, status="error", output="", error=message),
                )

    if failures:
        first = failures[min(failures)]
        raise UserError(f"{len(failures)} {action} task(s) failed. First failure: {first}")

    return [outcome for outcome in outcomes if outcome is not None]


def _online_task(
    path: Path,
    out_dir: Path,
    recorder: ManifestRecorder,
    dry_run: bool,
) -> TaskOutcome:
    out_path = out_dir / path.name
    inputs = (str(path),)

    if dry_run:
        recorder.log(f"[dry-run] Would resize {path.name} -> {out_path}")
        return _record(
            recorder,
            TaskOutcome(action="online_page", status="dry-run", output=str(out_path), inputs=inputs),
        )

    loaded = load_image(path, recorder)
    if not loaded.ok:
        return _record(
            recorder,
            TaskOutcome(
                action="online_page",
                status="error",
                output=str(out_path),
                inputs=inputs,
                error=loaded.error,
            ),
        )

    source = loaded.image
    if source.width < ONLINE_WIDTH:
        recorder.log(
            f"Upscaling {path.name} from width {source.width} to {ONLINE_WIDTH}",
            level="warning",
        )
    save_image(resize_to_width(source), out_path, recorder)
    return _record(
        recorder,
        TaskOutcome(action="online_page", status="written", output=str(out_path), inputs=inputs),
    )


def _print_task(
    index: int,
    left_path: Path,
    right_path: Path,
    out_dir: Path,
    geometry: PageGeometry,
    recorder: ManifestRecorder,
    dry_run: bool,
) -> TaskOutcome:
    out_path = out_dir / spread_name(index)
    inputs = (str(left_path), str(right_path))
    recorder.log(f"Printing {left_path.name} and {right_path.name}", level="trace")

    if dry_run:
        recorder.log(
            f"[dry-run] Would write spread {left_path.name} | {right_path.name} -> {out_path}"
        )
        return _record(
            recorder,
            TaskOutcome(action="print_spread", status="dry-run", output=str(out_path), inputs=inputs),
        )

    pages = []
    for path in (left_path, right_path):
        loaded = load_image(path, recorder)
        if not loaded.ok:
            return _record(
                recorder,
                TaskOutcome(
                    action="print_spread",
                    status="error",
                    output=str(out_path),
                    inputs=inputs,
                    error=loaded.error,
                ),
            )
        pages.append(loaded.image)

    try:
        left, right = (crop_to_trim(page, geometry) for page in pages)
        spread = composite_spread(left, right, out_path.name)
    except ValueError as exc:
        message = f"Failed to build spread {out_path.name}: {exc}"
        recorder.log(message, level="error")
        return _record(
            recorder,
            TaskOutcome(
                action="print_spread",
                status="error",
                output=str(out_path),
                inputs=inputs,
                error=message,
            ),
        )

    save_image(spread, out_path, recorder)
    return _record(
        recorder,
        TaskOutcome(action="print_spread", status="written", output=str(out_path), inputs=inputs),
    )


def _prepare_output_dir(out_dir: Path, recorder: ManifestRecorder, dry_run: bool) -> None:
    if dry_run:
        recorder.log(f"[dry-run] Would recreate {out_dir}")
        return
    recreate_dir(out_dir)


def _summarize(outcomes: Sequence[TaskOutcome], out_dir: Path) -> Dict[str, Any]:
    counts: Dict[str, int] = {}
    for outcome in outcomes:
        counts[outcome.status] = counts.get(outcome.status, 0) + 1
    return {"output_dir": str(out_dir), "tasks": len(outcomes), "status_counts": counts}


def create_online_images(
    pages: Sequence[Path],
    out_dir: Path,
    recorder: ManifestRecorder,
    workers: Optional[int] = None,
    dry_run: bool = False,
) -> List[TaskOutcome]:
    """Resize every page to the online width inside a freshly recreated out_dir."""

    recorder.log("Creating images for online publishing", level="trace")
    _prepare_output_dir(out_dir, recorder, dry_run)

    jobs = [(path, out_dir, recorder, dry_run) for path in pages]
    outcomes = run_tasks(_online_task, jobs, "online_page", recorder, workers)

    written = sum(1 for outcome in outcomes if outcome.status == "written")
    recorder.log(f"Online: {written}/{len(pages)} page(s) written to {out_dir}")
    return outcomes


def create_print_images(
    pages: Sequence[Path],
    out_dir: Path,
    geometry: PageGeometry,
    recorder: ManifestRecorder,
    workers: Optional[int] = None,
    dry_run: bool = False,
) -> Optional[List[TaskOutcome]]:
    """
    Build booklet spreads inside a freshly recreated out_dir.

    Returns None without touching the filesystem when the page count is not
    a multiple of four.
    """

    try:
        pairs = spread_pairs(pages)
    except LayoutError as exc:
        recorder.log(str(exc), level="error")
        return None

    recorder.log("Creating images for printing", level="trace")
    _prepare_output_dir(out_dir, recorder, dry_run)

    jobs = [
        (index, left, right, out_dir, geometry, recorder, dry_run)
        for index, (left, right) in enumerate(pairs)
    ]
    outcomes = run_tasks(_print_task, jobs, "print_spread", recorder, workers)

    written = sum(1 for outcome in outcomes if outcome.status == "written")
    recorder.log(f"Print: {written}/{len(pairs)} spread(s) written to {out_dir}")
    return outcomes


def run(
    root: Path,
    geometry: PageGeometry,
    recorder: ManifestRecorder,
    online: bool = True,
    print_layout: bool = False,
    workers: Optional[int] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """
    Discover root/pages and run the enabled pipelines.

    Raises MissingInputError when there is nothing to process.
    """

    pages_dir = root / PAGES_DIR_NAME
    pages = discover_pages(pages_dir)
    if not pages:
        raise MissingInputError(f"Cannot fetch pages: no files in {pages_dir}")

    recorder.inputs["pages_dir"] = str(pages_dir)
    recorder.inputs["page_count"] = len(pages)
    recorder.log(f"Found {len(pages)} page(s) in {pages_dir}")

    summary: Dict[str, Any] = {"page_count": len(pages)}

    if online:
        out_dir = root / ONLINE_DIR_NAME
        recorder.outputs["online_dir"] = str(out_dir)
        outcomes = create_online_images(pages, out_dir, recorder, workers, dry_run)
        summary["online"] = _summarize(outcomes, out_dir)

    if print_layout:
        out_dir = root / PRINT_DIR_NAME
        outcomes = create_print_images(pages, out_dir, geometry, recorder, workers, dry_run)
        if outcomes is None:
            summary["print"] = {"status": "skipped", "reason": "page count not a multiple of 4"}
        else:
            recorder.outputs["print_dir"] = str(out_dir)
            summary["print"] = _summarize(outcomes, out_dir)

    return summary
