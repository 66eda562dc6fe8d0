import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import List, Optional

from django.conf import settings
from django.db import connections

from .models import Sweep

logger = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 4000


def _manage_py() -> Path:
    return Path(settings.BASE_DIR) / "manage.py"


def sweep_command(sweep_id: int) -> List[str]:
    return [sys.executable, str(_manage_py()), "run_sweep", str(sweep_id)]


def run_sweep_blocking(sweep_id: int, timeout: Optional[int] = None) -> Sweep:
    """Run ``manage.py run_sweep`` for a sweep and record how the process ended."""
    timeout = timeout or settings.SWEEP_TIMEOUT_SECONDS
    cmd = sweep_command(sweep_id)
    logger.info("Sweep %s starting: %s", sweep_id, " ".join(cmd))

    try:
        proc = subprocess.run(
            cmd,
            cwd=settings.BASE_DIR,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        sweep = Sweep.objects.get(pk=sweep_id)
        sweep.mark(Sweep.STATE_FAILED, error_message=f"Sweep timed out after {timeout}s")
        logger.error("Sweep %s timed out after %ss", sweep_id, timeout)
        return sweep
    except OSError as exc:
        sweep = Sweep.objects.get(pk=sweep_id)
        sweep.mark(Sweep.STATE_FAILED, error_message=f"Sweep process failed to start: {exc}")
        logger.exception("Sweep %s could not start", sweep_id)
        return sweep

    stdout = (proc.stdout or "").strip()
    stderr = (proc.stderr or "").strip()

    # the command itself updates status and counters; refresh before writing
    sweep = Sweep.objects.get(pk=sweep_id)
    sweep.return_code = proc.returncode
    sweep.output = stdout[-OUTPUT_TAIL_CHARS:]
    if proc.returncode != 0:
        sweep.mark(
            Sweep.STATE_FAILED,
            error_message=sweep.error_message or stderr[-OUTPUT_TAIL_CHARS:] or f"rc={proc.returncode}",
        )
        logger.error("Sweep %s failed rc=%s", sweep_id, proc.returncode)
    elif not sweep.is_finished:
        sweep.mark(Sweep.STATE_COMPLETED)
    else:
        sweep.save(update_fields=["return_code", "output", "last_modified"])

    logger.info("Sweep %s finished status=%s rc=%s", sweep_id, sweep.sweep_status, proc.returncode)
    return sweep


def _run_in_background(sweep_id: int) -> None:
    try:
        run_sweep_blocking(sweep_id)
    except Exception:
        logger.exception("Sweep %s runner crashed", sweep_id)
    finally:
        connections.close_all()


def launch_sweep(sweep: Sweep) -> threading.Thread:
    thread = threading.Thread(
        target=_run_in_background,
        args=(sweep.id,),
        name=f"sweep-{sweep.id}",
        daemon=True,
    )
    thread.start()
    return thread
