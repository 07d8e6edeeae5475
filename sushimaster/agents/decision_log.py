"""
Per-decision diagnostic trace.

A DecisionLogger owns three append-only files under its log directory:

    decision_trace_<run>.csv   one row per candidate action
    decisions_<run>.jsonl      one JSON object per decision
    regret_<run>.csv           chosen score minus best candidate score

Files are opened by open(), flushed after every record and closed by
close(); the logger also works as a context manager. Decisions of one agent
are sequential, so a logger must not be shared by agents deciding
concurrently.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Hashable, Optional

logger = logging.getLogger(__name__)

TRACE_HEADER = [
    "round",
    "turn",
    "agent",
    "action",
    "chosen_action",
    "score",
    "chosen",
    "best_score",
    "num_players",
    "round_counter",
]
REGRET_HEADER = ["round", "turn", "agent", "regret"]


class DecisionLoggerError(Exception):
    """Raised when recording to a logger that is not open."""

    pass


class DecisionLogger:
    """
    CSV/JSONL sink for decision diagnostics.

    Attributes:
        log_dir: Directory holding the trace files
        run_name: Suffix of every file name (timestamp by default)
        records_written: Decisions recorded since open()
    """

    def __init__(self, log_dir: str = "logs", run_name: Optional[str] = None):
        self.log_dir = Path(log_dir)
        self.run_name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.records_written = 0

        self._trace_file = None
        self._json_file = None
        self._regret_file = None
        self._trace_writer = None
        self._regret_writer = None

    @property
    def trace_path(self) -> Path:
        return self.log_dir / f"decision_trace_{self.run_name}.csv"

    @property
    def json_path(self) -> Path:
        return self.log_dir / f"decisions_{self.run_name}.jsonl"

    @property
    def regret_path(self) -> Path:
        return self.log_dir / f"regret_{self.run_name}.csv"

    @property
    def is_open(self) -> bool:
        return all(
            f is not None for f in (self._trace_file, self._json_file, self._regret_file)
        )

    def open(self) -> "DecisionLogger":
        """
        Create the log directory and open (append to) all three files.

        Raises:
            OSError: If any file cannot be opened; none is left open
        """
        if self.is_open:
            return self

        self.log_dir.mkdir(parents=True, exist_ok=True)

        trace_exists = self.trace_path.exists()
        regret_exists = self.regret_path.exists()

        try:
            self._trace_file = open(self.trace_path, "a", newline="")
            self._json_file = open(self.json_path, "a")
            self._regret_file = open(self.regret_path, "a", newline="")
            self._trace_writer = csv.writer(self._trace_file)
            self._regret_writer = csv.writer(self._regret_file)

            if not trace_exists:
                self._trace_writer.writerow(TRACE_HEADER)
            if not regret_exists:
                self._regret_writer.writerow(REGRET_HEADER)
            self.flush()
        except OSError as e:
            logger.error(f"Failed to open decision trace in {self.log_dir}: {e}")
            self.close()
            raise

        logger.info(f"Decision trace logging to {self.trace_path}")
        return self

    def record(
        self,
        round_index: int,
        turn_index: int,
        agent_id: int,
        candidate_scores: Dict[Hashable, float],
        chosen_action: Hashable,
        num_players: Optional[int] = None,
        state_summary: Optional[str] = None,
    ) -> None:
        """
        Append one decision.

        Args:
            round_index: Round of the decision
            turn_index: Turn within the round
            agent_id: Deciding player
            candidate_scores: Score per candidate action
            chosen_action: Action returned by the engine
            num_players: Players in the game (trace column)
            state_summary: Human-readable state (JSON record)

        Raises:
            DecisionLoggerError: If the logger is not open
        """
        if not self.is_open:
            raise DecisionLoggerError("DecisionLogger is not open")

        agent = f"Agent{agent_id}"
        chosen = str(chosen_action)
        best_score = max(candidate_scores.values()) if candidate_scores else 0.0

        for action, score in candidate_scores.items():
            self._trace_writer.writerow([
                round_index,
                turn_index,
                agent,
                str(action),
                chosen,
                f"{score:.3f}",
                str(action) == chosen,
                f"{best_score:.3f}",
                num_players,
                round_index,
            ])

        self._json_file.write(json.dumps({
            "timestamp": datetime.now().isoformat(),
            "round": round_index,
            "turn": turn_index,
            "agent": agent,
            "state": state_summary,
            "chosen": chosen,
            "scores": {str(action): score for action, score in candidate_scores.items()},
        }) + "\n")

        if chosen_action in candidate_scores:
            regret = candidate_scores[chosen_action] - best_score
            self._regret_writer.writerow([round_index, turn_index, agent, f"{regret:.3f}"])

        self.flush()
        self.records_written += 1

    def flush(self) -> None:
        for f in (self._trace_file, self._json_file, self._regret_file):
            if f is not None:
                f.flush()

    def close(self) -> None:
        for f in (self._trace_file, self._json_file, self._regret_file):
            if f is not None:
                f.close()
        self._trace_file = None
        self._json_file = None
        self._regret_file = None
        self._trace_writer = None
        self._regret_writer = None

    def __enter__(self) -> "DecisionLogger":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
