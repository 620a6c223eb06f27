from .aggregate import aggregate_period, results_to_frame
from .simulator import run_projection
from .tax_aggregator import TaxAssessment, assess_taxes

__all__ = ["TaxAssessment", "aggregate_period", "assess_taxes", "results_to_frame", "run_projection"]
