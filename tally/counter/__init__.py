"""Counter domain: event log, aggregates and their HTTP surface."""
