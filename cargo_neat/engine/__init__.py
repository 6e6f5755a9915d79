"""Dependency-usage engine — unused and non-workspace dependency detection."""

from cargo_neat.engine.analyzer import WorkspaceAnalyzer, analyze
from cargo_neat.engine.models import DependencySpec, UsageResult, PolicyViolation
from cargo_neat.engine.report import Report

__all__ = ["DependencySpec", "PolicyViolation", "Report", "UsageResult", "WorkspaceAnalyzer", "analyze"]
