"""Diagnosis tools for failed blends."""

from milkblend.explore.diagnosis import diagnose_infeasibility, relax_model

__all__ = ["diagnose_infeasibility", "relax_model"]
