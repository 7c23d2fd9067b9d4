"""Prometheus metrics for the photo processing pipeline"""

import logging
from typing import Dict, List
from collections import defaultdict
from prometheus_client import Counter, Histogram, Gauge

logger = logging.getLogger(__name__)


# Intake metrics
photos_ingested_total = Counter(
    'photomap_photos_ingested_total',
    'Total number of photos taken in by the registry'
)

photos_removed_total = Counter(
    'photomap_photos_removed_total',
    'Total number of photos removed from the registry'
)

# Stage metrics
stage_completions_total = Counter(
    'photomap_stage_completions_total',
    'Total number of stage completions',
    ['stage', 'status']
)

stage_duration_seconds = Histogram(
    'photomap_stage_duration_seconds',
    'Time from stage start to completion',
    ['stage', 'status'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

stale_results_dropped_total = Counter(
    'photomap_stale_results_dropped_total',
    'Stage results dropped because the photo was removed or already settled',
    ['stage']
)

# Model metrics
model_load_duration_seconds = Histogram(
    'photomap_model_load_duration_seconds',
    'Time spent loading the classification model',
    ['status'],
    buckets=[0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

model_state = Gauge(
    'photomap_model_state',
    'Classification model state (0=unloaded, 1=loading, 2=ready, 3=load_failed)'
)

classification_confidence = Histogram(
    'photomap_classification_confidence',
    'Distribution of top-1 classification confidence scores',
    buckets=[0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
)

# Map view metrics
map_ready_photos = Gauge(
    'photomap_map_ready_photos',
    'Number of photos currently in the map-ready view'
)


class MetricsCollector:
    """Collector for pipeline metrics with in-memory statistics"""

    def __init__(self):
        self.latencies: Dict[str, List[float]] = defaultdict(list)
        self.max_latency_samples = 1000  # Keep last N samples for percentile calculation

    def record_intake(self):
        """Record a photo intake"""
        photos_ingested_total.inc()

    def record_removal(self):
        """Record a photo removal"""
        photos_removed_total.inc()

    def record_stage_completion(self, stage: str, status: str, duration_seconds: float):
        """Record a stage reaching a terminal state"""
        stage_completions_total.labels(stage=stage, status=status).inc()
        stage_duration_seconds.labels(stage=stage, status=status).observe(duration_seconds)

        # Store latency for percentile calculation
        key = f"{stage}_{status}"
        self.latencies[key].append(duration_seconds * 1000)  # Convert to ms
        if len(self.latencies[key]) > self.max_latency_samples:
            self.latencies[key].pop(0)

    def record_stale_result(self, stage: str):
        """Record a stage result dropped without merging"""
        stale_results_dropped_total.labels(stage=stage).inc()

    def record_model_load(self, success: bool, duration_seconds: float):
        """Record a classification model load attempt"""
        status = "success" if success else "failure"
        model_load_duration_seconds.labels(status=status).observe(duration_seconds)

    def record_model_state(self, state: str):
        """Record classification model state"""
        state_value = {"unloaded": 0, "loading": 1, "ready": 2, "load_failed": 3}.get(state, 0)
        model_state.set(state_value)

    def record_classification(self, top_confidence: float):
        """Record the top-1 confidence of a classification"""
        classification_confidence.observe(top_confidence)

    def record_map_view_size(self, size: int):
        """Record the current size of the map-ready view"""
        map_ready_photos.set(size)

    def get_latency_percentiles(self, stage: str, status: str = "done") -> Dict[str, float]:
        """Calculate latency percentiles from stored samples"""
        key = f"{stage}_{status}"
        latencies = self.latencies.get(key, [])

        if not latencies:
            return {"p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}

        sorted_latencies = sorted(latencies)
        n = len(sorted_latencies)

        def percentile(p: float) -> float:
            k = (n - 1) * p
            f = int(k)
            c = min(f + 1, n - 1)
            return sorted_latencies[f] + (k - f) * (sorted_latencies[c] - sorted_latencies[f])

        return {
            "p50": percentile(0.50),
            "p90": percentile(0.90),
            "p95": percentile(0.95),
            "p99": percentile(0.99),
        }


# Global metrics collector instance
metrics_collector = MetricsCollector()
