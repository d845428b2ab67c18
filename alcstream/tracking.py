"""
Chunk-level bookkeeping for alcstream.

Records, for every processed chunk, how the chunk was split across clusters,
which weights were applied and how many instances of each bucket were
actually used for training. The ratio of trained to seen instances is the
label cost of the run.
"""

import numpy as np
from typing import Dict, List, Optional, Any


class ChunkTracker:
    """
    Tracks bucket composition and budget spending across chunks.

    Example:
        tracker = ChunkTracker()
        learner = ALCClassifier(..., on_chunk_end=tracker.record_report)
        # ... after streaming ...
        print(tracker.label_cost())     # e.g. 0.27
        df = tracker.to_dataframe()     # one row per (chunk, bucket)
    """

    def __init__(self):
        self.history = []

    def record(
        self,
        chunk_index: int,
        bucket_sizes: List[int],
        weights: List[float],
        trained_counts: List[int],
        extra: Optional[Dict[str, Any]] = None,
    ):
        """
        Record one chunk.

        Args:
            chunk_index: Index of the chunk since the last reset.
            bucket_sizes: Instances per bucket (last = outside bucket).
            weights: Weight applied to each bucket.
            trained_counts: Instances trained on per bucket.
            extra: Optional dict of additional per-chunk metadata.
        """
        entry = {
            "chunk": chunk_index,
            "bucket_sizes": np.asarray(bucket_sizes, dtype=np.int64),
            "weights": np.asarray(weights, dtype=np.float64),
            "trained": np.asarray(trained_counts, dtype=np.int64),
        }
        if extra is not None:
            entry["extra"] = extra
        self.history.append(entry)

    def record_report(self, chunk_index: int, report: Dict[str, Any]):
        """Adapter with the signature of ALCClassifier's on_chunk_end callback."""
        self.record(
            chunk_index,
            bucket_sizes=[len(b) for b in report["buckets"]],
            weights=report["weights"],
            trained_counts=[len(t) for t in report["trained"]],
            extra={"n_clusters": report["n_clusters"]},
        )

    def total_seen(self) -> int:
        return int(sum(e["bucket_sizes"].sum() for e in self.history))

    def total_trained(self) -> int:
        return int(sum(e["trained"].sum() for e in self.history))

    def label_cost(self) -> float:
        """Fraction of chunked instances that were used for training."""
        seen = self.total_seen()
        return self.total_trained() / seen if seen else 0.0

    def to_dataframe(self):
        """
        Export full history as a pandas DataFrame for analysis.

        Each row represents one bucket of one chunk.
        Columns: chunk, bucket, outside, size, weight, trained.

        Returns:
            pandas.DataFrame
        """
        import pandas as pd

        rows = []
        for entry in self.history:
            n_buckets = len(entry["bucket_sizes"])
            for i in range(n_buckets):
                rows.append({
                    "chunk": entry["chunk"],
                    "bucket": i,
                    "outside": i == n_buckets - 1,
                    "size": entry["bucket_sizes"][i],
                    "weight": entry["weights"][i],
                    "trained": entry["trained"][i],
                })

        return pd.DataFrame(rows)

    def __len__(self):
        return len(self.history)
