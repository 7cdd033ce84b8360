"""
Energy metric calculators.

- timestamps: display-timestamp resolution with validity window
- log_validation: row-level filtering of malformed entries
- rate_estimation: shared per-minute rate rule
- user_energy: per-address statistics
- system_energy: contract-wide statistics and leaderboard
- rate_history: daily/weekly/monthly bucketed rates
"""
