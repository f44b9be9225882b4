"""Question paper client: rule-set building, paper composition, and evaluator review."""
