"""
MCP Server Instructions - Usage guide for AI agents.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
OpenIdea Search MCP Server - federated search for research resources

One query is sent to every provider serving the requested type and the
answers are merged, de-duplicated and ranked on one scale.

## Tools
- search_resources(query, type="all", page=1, limit=30)
    type: all | paper | dataset | code | model | hardware | video
    Returns JSON: results, total, page, pageSize, hasMore, coverage, stats
- list_providers()
    Returns the registered providers, their types and whether they are enabled

## Reading coverage
coverage maps each queried provider to the number of results it returned.
A zero means the provider had no hits, failed or ran out of time; the
search itself still succeeded. Re-running later may fill the gap.

## Paging
Pages are computed over the merged list of a fresh search; results are not
cached, so page 2 re-queries every provider.
"""
