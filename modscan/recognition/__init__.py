"""Region analyzers, consensus and calibration."""

from .brightness import BrightnessAnalyzer
from .calibration import (
    CalibrationStore,
    Recalibrator,
    WeightsRegistry,
    algorithm_accuracy,
    load_weights_file,
    save_weights_file,
    weights_from_records,
)
from .color import ColorAnalyzer
from .consensus import ConsensusEngine, calculate_consensus
from .edge import EdgeAnalyzer
from .engine import BatchResult, RecognitionEngine, batch_stats, default_analyzers
from .interface import RegionAnalyzer
from .pattern import PatternAnalyzer
from .zones import RegionContext, ZoneAdjuster, color_match, region_contexts


__all__ = [
    # Analyzers
    "RegionAnalyzer",
    "BrightnessAnalyzer",
    "ColorAnalyzer",
    "EdgeAnalyzer",
    "PatternAnalyzer",
    "default_analyzers",
    # Consensus
    "ConsensusEngine",
    "calculate_consensus",
    # Engine
    "RecognitionEngine",
    "BatchResult",
    "batch_stats",
    # Zones
    "RegionContext",
    "ZoneAdjuster",
    "color_match",
    "region_contexts",
    # Calibration
    "WeightsRegistry",
    "CalibrationStore",
    "Recalibrator",
    "algorithm_accuracy",
    "weights_from_records",
    "load_weights_file",
    "save_weights_file",
]
