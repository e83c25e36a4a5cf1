"""HTTP routes: readiness probes and the estimator/audit-report pipeline."""
