"""Oscillators used as trading signal inputs."""

from dvilab.core.indicators.dvi import Oscillator, compute_dvi, running_percent_rank

__all__ = ["Oscillator", "compute_dvi", "running_percent_rank"]
