"""
HTTP clients for indexing platform query APIs.

Query styles covered:
- GraphQL (Envio HyperIndex, The Graph, Subsquid): POST {query, variables}
- SQL-over-HTTP (Sentio analytics): POST {sqlQuery: {sql}} with api-key header
- HyperSync (Envio raw chain data): POST /query with a block range
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class GraphQLError(RuntimeError):
    """Raised when a GraphQL response carries an `errors` list."""

    def __init__(self, errors: List[Any]):
        self.errors = errors
        super().__init__(f"GraphQL query failed: {errors}")


class IndexerHttpClient:
    """
    Base client holding a retrying requests session.

    Subclasses add the request body shape of their platform.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Endpoint URL queries are posted to
            timeout: Request timeout in seconds (default: 60)
            max_retries: Maximum number of retry attempts (default: 3)
            headers: Extra headers sent with every request
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Configure session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS", "POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({'Accept': 'application/json'})
        if headers:
            self.session.headers.update(headers)

    def _post_json(self, json_data: Dict[str, Any], url: Optional[str] = None) -> Dict[str, Any]:
        """
        POST a JSON body and decode the JSON response.

        Args:
            json_data: Request body
            url: Target URL (defaults to base_url)

        Returns:
            Response data as dictionary

        Raises:
            requests.exceptions.RequestException: For request failures
        """
        target = url or self.base_url

        try:
            response = self.session.post(
                target,
                json=json_data,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
            response.raise_for_status()

            if response.status_code == 204 or not response.content:
                return {}

            return response.json()

        except requests.exceptions.HTTPError as e:
            logger.error(f"HTTP Error from {target}: {e}")
            if e.response is not None:
                logger.error(f"Response status: {e.response.status_code}")
                logger.error(f"Response body: {e.response.text if e.response.text else 'Empty'}")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"Request Error from {target}: {e}")
            raise

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class GraphQLClient(IndexerHttpClient):
    """Client for GraphQL indexer endpoints."""

    def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            The `data` object of the response

        Raises:
            GraphQLError: If the response reports errors
        """
        body: Dict[str, Any] = {'query': query}
        if variables is not None:
            body['variables'] = variables

        payload = self._post_json(body)
        if payload.get('errors'):
            raise GraphQLError(payload['errors'])
        return payload.get('data') or {}

    def health_check(self) -> bool:
        """Check the endpoint answers a trivial query."""
        try:
            self.query("{ __typename }")
            return True
        except (requests.exceptions.RequestException, GraphQLError, ValueError) as e:
            logger.warning(f"Health check failed for {self.base_url}: {e}")
            return False


class SentioSqlClient(IndexerHttpClient):
    """
    Client for Sentio's SQL-over-HTTP analytics API.

    The project URL looks like
    https://app.sentio.xyz/api/v1/analytics/<owner>/<project>/sql/execute
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = 60,
        max_retries: int = 3
    ):
        if not api_key:
            raise ValueError("A Sentio API key is required (set SENTIO_API_KEY)")
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            headers={'api-key': api_key}
        )

    def execute_sql(self, sql: str) -> List[Dict[str, Any]]:
        """
        Run a SQL statement and return its rows.

        Args:
            sql: SQL text, including any LIMIT/OFFSET

        Returns:
            List of row dictionaries (empty when the result has no rows)
        """
        payload = self._post_json({'sqlQuery': {'sql': sql}})
        result = payload.get('result') or {}
        rows = result.get('rows')
        return rows if isinstance(rows, list) else []

    def test_connection(self, max_attempts: int = 3, retry_delay: float = 5.0) -> bool:
        """
        Probe the API with a trivial query, retrying a fixed number of times.

        Args:
            max_attempts: Number of attempts before giving up
            retry_delay: Fixed sleep between attempts in seconds

        Returns:
            True if one attempt succeeded
        """
        logger.info(f"Testing connection to Sentio API: {self.base_url}")

        for attempt in range(1, max_attempts + 1):
            try:
                payload = self._post_json({'sqlQuery': {'sql': 'select 1 as test limit 1'}})
                if (payload.get('result') or {}).get('rows') is not None:
                    logger.info("Connection test successful")
                    return True
                logger.error(f"Connection test response format unexpected: {payload}")
            except requests.exceptions.RequestException as e:
                logger.error(f"Connection test attempt {attempt} failed: {e}")

            if attempt < max_attempts:
                logger.info(f"Retrying in {retry_delay:g} seconds... (attempt {attempt + 1}/{max_attempts})")
                time.sleep(retry_delay)

        return False

    def health_check(self) -> bool:
        return self.test_connection(max_attempts=1)


class HyperSyncClient(IndexerHttpClient):
    """
    Client for Envio's HyperSync JSON query API.

    Queries are posted to <base_url>/query and answered with a batch of
    blocks/transactions plus `next_block`, the block to resume from.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: int = 60,
        max_retries: int = 3
    ):
        headers = {'Authorization': f'Bearer {api_token}'} if api_token else None
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            headers=headers
        )

    def query(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one HyperSync query.

        Args:
            body: Query with from_block, to_block, selections and field_selection

        Returns:
            Raw response with `data` and `next_block`
        """
        return self._post_json(body, url=f"{self.base_url}/query")

    def get_height(self) -> int:
        """Return the archive height reported by the server."""
        response = self.session.get(f"{self.base_url}/height", timeout=self.timeout)
        response.raise_for_status()
        return int(response.json().get('height', 0))

    def health_check(self) -> bool:
        try:
            height = self.get_height()
            logger.info(f"HyperSync height: {height}")
            return True
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Health check failed for {self.base_url}: {e}")
            return False
