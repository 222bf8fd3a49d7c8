"""Browser modules (Playwright).

``surface`` exposes the page to the automation agent through a narrow
protocol, ``navigation`` wraps history navigation with wait-strategy
fallback, and ``pacing`` produces randomized inter-action delays.
"""
