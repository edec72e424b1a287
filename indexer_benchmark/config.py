"""
Benchmark configuration.

Endpoints, credentials and pagination settings are injected through
environment variables; nothing secret lives in source.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


DEFAULT_SENTIO_BASE_URL = "https://app.sentio.xyz/api/v1/analytics/yufei"


@dataclass
class BenchmarkConfig:
    """Configuration shared by the extraction and comparison stages."""
    # Storage
    data_dir: str = "data"
    report_dir: str = "reports"

    # Pagination
    page_size: Optional[int] = None  # None means use the case default
    max_pages: int = 10000
    request_delay_seconds: float = 0.5

    # HTTP
    request_timeout: int = 60
    max_retries: int = 3

    # Sentio SQL-over-HTTP
    sentio_api_key: str = ""
    sentio_base_url: str = DEFAULT_SENTIO_BASE_URL

    # Envio HyperSync
    hypersync_api_token: str = ""

    # Direct SQL
    ponder_database_url: str = ""
    ponder_schema: str = "public"
    subsquid_database_url: str = ""
    connect_timeout: int = 30
    statement_timeout_ms: int = 300000

    # Platform endpoint overrides, keyed "<platform>" or "<platform>:<case>"
    endpoints: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "BenchmarkConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            BenchmarkConfig populated from the environment
        """
        env = os.environ if environ is None else environ

        page_size = env.get('BENCHMARK_PAGE_SIZE')

        config = cls(
            data_dir=env.get('BENCHMARK_DATA_DIR', 'data'),
            report_dir=env.get('BENCHMARK_REPORT_DIR', 'reports'),
            page_size=int(page_size) if page_size else None,
            max_pages=int(env.get('BENCHMARK_MAX_PAGES', '10000')),
            request_delay_seconds=float(env.get('BENCHMARK_REQUEST_DELAY', '0.5')),
            request_timeout=int(env.get('BENCHMARK_REQUEST_TIMEOUT', '60')),
            max_retries=int(env.get('BENCHMARK_MAX_RETRIES', '3')),
            sentio_api_key=env.get('SENTIO_API_KEY', ''),
            sentio_base_url=env.get('SENTIO_BASE_URL', DEFAULT_SENTIO_BASE_URL),
            hypersync_api_token=env.get('HYPERSYNC_API_TOKEN', ''),
            ponder_database_url=env.get('PONDER_DATABASE_URL', ''),
            ponder_schema=env.get('PONDER_SCHEMA', 'public'),
            subsquid_database_url=env.get('SUBSQUID_DATABASE_URL', ''),
            connect_timeout=int(env.get('BENCHMARK_CONNECT_TIMEOUT', '30')),
            statement_timeout_ms=int(env.get('BENCHMARK_STATEMENT_TIMEOUT_MS', '300000')),
        )

        # Generic overrides first, then per-case ones, e.g. ENVIO_ENDPOINT_CASE_1
        generic = {
            'envio': 'ENVIO_ENDPOINT',
            'subgraph': 'SUBGRAPH_ENDPOINT',
            'subsquid': 'SUBSQUID_GRAPHQL_ENDPOINT',
            'hypersync': 'HYPERSYNC_ENDPOINT',
        }
        for platform, var in generic.items():
            if env.get(var):
                config.endpoints[platform] = env[var]

        for key, value in env.items():
            for platform, var in generic.items():
                prefix = f"{var}_"
                if key.startswith(prefix) and value:
                    case_name = key[len(prefix):].lower()
                    config.endpoints[f"{platform}:{case_name}"] = value

        return config

    def endpoint_for(self, platform: str, case_name: str, default: str = "") -> str:
        """Resolve the endpoint for a platform, preferring per-case overrides."""
        return (
            self.endpoints.get(f"{platform}:{case_name}")
            or self.endpoints.get(platform)
            or default
        )

    def case_data_dir(self, case_name: str) -> str:
        return os.path.join(self.data_dir, case_name)
