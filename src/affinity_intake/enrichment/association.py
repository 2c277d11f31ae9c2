"""Fetch target-disease association scores from the Open Targets Platform."""

from typing import Any, Optional

import structlog
from requests.exceptions import RequestException

from affinity_intake.api_clients.base import CachedAPIClient
from affinity_intake.config.schema import IntakeConfig

logger = structlog.get_logger()

ASSOCIATED_DISEASES_QUERY = """
query TargetAssociations($ensemblId: String!, $size: Int!, $index: Int!) {
  target(ensemblId: $ensemblId) {
    associatedDiseases(page: { size: $size, index: $index }) {
      count
      rows {
        score
        disease { id }
      }
    }
  }
}
"""


def _object(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _associated_diseases(payload: Any) -> dict:
    """Dig ``data.target.associatedDiseases`` out of a GraphQL response.

    Any level with an unexpected shape yields an empty result.
    """
    data = _object(_object(payload).get("data"))
    target = _object(data.get("target"))
    return _object(target.get("associatedDiseases"))


def _score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class AssociationScoreFetcher:
    """Pages through a target's ranked disease associations.

    Stops at the first page containing the requested indication, on an
    empty page, or once the server-reported total has been reached.
    """

    def __init__(
        self,
        client: CachedAPIClient,
        graphql_url: str,
        page_size: int = 50,
        timeout: float = 12.0,
    ):
        self.client = client
        self.graphql_url = graphql_url
        self.page_size = page_size
        self.timeout = timeout

    def _fetch_page(self, target_identifier: str, index: int) -> Any:
        return self.client.post_json(
            self.graphql_url,
            {
                "query": ASSOCIATED_DISEASES_QUERY,
                "variables": {
                    "ensemblId": target_identifier,
                    "size": self.page_size,
                    "index": index,
                },
            },
            timeout=self.timeout,
        )

    def fetch_score(self, target_identifier: str, indication_id: str) -> Optional[float]:
        """Return the association score of ``indication_id`` for a target.

        Returns:
            The score, or None if the indication is not associated, the
            score is null, or any page request fails (logged, not raised)
        """
        index = 0
        total = 0

        while True:
            try:
                payload = self._fetch_page(target_identifier, index)
            except (RequestException, ValueError) as e:
                logger.warning(
                    "association_fetch_failed",
                    target_identifier=target_identifier,
                    indication_id=indication_id,
                    page_index=index,
                    error=str(e),
                )
                return None

            associations = _associated_diseases(payload)
            rows = associations.get("rows")
            if not isinstance(rows, list):
                rows = []
            count = associations.get("count")
            if isinstance(count, int) and not isinstance(count, bool):
                total = count

            for row in rows:
                row = _object(row)
                if _object(row.get("disease")).get("id") == indication_id:
                    score = _score(row.get("score"))
                    logger.debug(
                        "association_found",
                        target_identifier=target_identifier,
                        indication_id=indication_id,
                        page_index=index,
                        score=score,
                    )
                    return score

            index += 1
            if not rows or index * self.page_size >= total:
                return None

    @classmethod
    def from_config(cls, config: IntakeConfig, client: CachedAPIClient) -> "AssociationScoreFetcher":
        return cls(
            client=client,
            graphql_url=config.enrichment.opentargets_graphql_url,
            page_size=config.enrichment.page_size,
            timeout=config.enrichment.opentargets_timeout_seconds,
        )
