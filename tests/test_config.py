"""Tests for environment-driven configuration."""
import os

from indexer_benchmark.config import DEFAULT_SENTIO_BASE_URL, BenchmarkConfig


class TestFromEnv:
    def test_defaults(self):
        config = BenchmarkConfig.from_env({})
        assert config.data_dir == "data"
        assert config.report_dir == "reports"
        assert config.page_size is None
        assert config.max_pages == 10000
        assert config.request_delay_seconds == 0.5
        assert config.sentio_api_key == ""
        assert config.sentio_base_url == DEFAULT_SENTIO_BASE_URL
        assert config.ponder_schema == "public"
        assert config.endpoints == {}

    def test_values_parsed(self):
        config = BenchmarkConfig.from_env({
            "BENCHMARK_DATA_DIR": "/tmp/bench",
            "BENCHMARK_PAGE_SIZE": "250",
            "BENCHMARK_MAX_PAGES": "7",
            "BENCHMARK_REQUEST_DELAY": "0",
            "BENCHMARK_STATEMENT_TIMEOUT_MS": "1000",
            "SENTIO_API_KEY": "key",
            "PONDER_DATABASE_URL": "postgresql://localhost/ponder",
            "PONDER_SCHEMA": "ponder_v1",
            "HYPERSYNC_API_TOKEN": "token",
        })
        assert config.data_dir == "/tmp/bench"
        assert config.page_size == 250
        assert config.max_pages == 7
        assert config.request_delay_seconds == 0.0
        assert config.statement_timeout_ms == 1000
        assert config.sentio_api_key == "key"
        assert config.ponder_database_url == "postgresql://localhost/ponder"
        assert config.ponder_schema == "ponder_v1"
        assert config.hypersync_api_token == "token"

    def test_endpoint_precedence(self):
        config = BenchmarkConfig.from_env({
            "ENVIO_ENDPOINT": "https://envio.test/graphql",
            "ENVIO_ENDPOINT_CASE_2": "https://envio-case2.test/graphql",
            "SUBSQUID_GRAPHQL_ENDPOINT_CASE_4": "https://squid.test/graphql",
        })
        assert config.endpoint_for("envio", "case_2") == "https://envio-case2.test/graphql"
        assert config.endpoint_for("envio", "case_1") == "https://envio.test/graphql"
        assert config.endpoint_for("subsquid", "case_4") == "https://squid.test/graphql"
        assert config.endpoint_for("subsquid", "case_5", default="https://default.test") == "https://default.test"
        assert config.endpoint_for("subgraph", "case_1") == ""

    def test_case_data_dir(self):
        config = BenchmarkConfig(data_dir="out")
        assert config.case_data_dir("case_3") == os.path.join("out", "case_3")
