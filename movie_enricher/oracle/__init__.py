"""
Semantic oracle: the external text-completion service behind enrichment,
preference analysis, recommendation ranking, queries, and comparisons.

Modules
-------
base          : OracleMessage / OracleRequest + the ``Oracle`` capability (one method).
openai_client : OpenAIChatOracle — httpx client for /chat/completions.
prompts       : build_*_request() — one builder per pipeline call.
parsing       : parse_json() — fence-tolerant JSON decoding → OracleError.
"""

from .base import Oracle, OracleMessage, OracleRequest
from .openai_client import OpenAIChatOracle

__all__ = ["Oracle", "OracleMessage", "OracleRequest", "OpenAIChatOracle"]
