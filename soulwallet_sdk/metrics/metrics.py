import logging
from prometheus_client import Counter, Summary, start_http_server

BUNDLER_REQUEST_TIME = Summary(
    "bundler_request_processing_seconds",
    "Time spent waiting for bundler json-rpc requests",
    ["method"],
)

USER_OPERATION_HASH_MISMATCH = Counter(
    "user_operation_hash_mismatch",
    "Bundler returned a user operation hash different from the local one",
)


def run_metrics_server(host="localhost", port=8000):
    """
    run prometheus metrics server
    """
    logging.info(f"Starting Metrics Http Server at: {host}:{port}")
    start_http_server(port, addr=host)
