"""BPM contest tables.

A contest maps a quantized tempo bucket (integer BPM at some resolution) to
an accumulated score. Buckets are credited when the tracker ticks, every
entry decays as time passes, and the whole table is rescaled whenever its
best entry crosses the finish line, so scores stay bounded while keeping
their ratios. The bucket with the highest score is the current leader.
"""

from typing import Dict, Iterator, Tuple

from wavebeat.config.audio_config import FINISH_LINE


class BpmContest:
    """Ordered bucket -> score table with credit, decay and rescale steps."""

    def __init__(self, finish_line: float = FINISH_LINE):
        self.finish_line = finish_line
        self.scores: Dict[int, float] = {}

    def __len__(self) -> int:
        return len(self.scores)

    def __contains__(self, bucket) -> bool:
        return bucket in self.scores

    def __getitem__(self, bucket) -> float:
        return self.scores[bucket]

    def items(self) -> Iterator[Tuple[int, float]]:
        return iter(list(self.scores.items()))

    def clear(self) -> None:
        self.scores.clear()

    def credit(self, bucket: int, amount: float) -> None:
        """Add amount to bucket, creating it at zero first."""
        self.scores[bucket] = self.scores.get(bucket, 0.0) + amount

    def decay(self, fraction: float) -> None:
        """Remove `fraction` of every entry's score."""
        for bucket, score in self.scores.items():
            self.scores[bucket] = score - score * fraction

    def max_score(self) -> float:
        return max(self.scores.values(), default=0.0)

    def rescale(self) -> bool:
        """Scale all scores so the best equals the finish line, if it was above.

        Returns:
            bool: True when the table was rescaled
        """
        contest_max = self.max_score()
        if contest_max <= self.finish_line:
            return False
        for bucket, score in self.scores.items():
            self.scores[bucket] = (score / contest_max) * self.finish_line
        return True

    def leader(self) -> Tuple[int, float]:
        """Bucket with the highest positive score, first one on ties.

        Returns:
            tuple: (bucket, score), or (0, 0.0) when no entry is positive
        """
        winner, win_val = 0, 0.0
        for bucket, score in self.scores.items():
            if win_val < score:
                winner, win_val = bucket, score
        return winner, win_val
