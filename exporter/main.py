"""Prometheus metrics exporter — watches the hit counter's Kafka topics.

Subscribes to both hit-commands and hit-results, updating Prometheus
counters and gauges in real time.  The exporter never touches aggregator
state: command traffic is counted from the command topic, and window
gauges follow whatever the hit counter last published.

Usage:
    python -m exporter.main
    python -m exporter.main --bootstrap-servers kafka-1:29092 --port 9090
"""

import argparse
import json
import signal
import sys
import time

from confluent_kafka import Consumer, KafkaError
from prometheus_client import Counter, Gauge, start_http_server

from aggregator.commands import ParseFailure, parse_command

# ---------------------------------------------------------------------------
# Command metrics
# ---------------------------------------------------------------------------
# Each Counter/Gauge below auto-registers itself in the global REGISTRY on
# construction; start_http_server() serves that registry on GET /metrics.
commands_total = Counter(
    "hits_commands_total",
    "Commands seen on the command topic",
    ["command"],
)
command_errors_total = Counter(
    "hits_command_errors_total",
    "Command lines that failed to parse",
    ["kind"],
)

# ---------------------------------------------------------------------------
# Window metrics (last value published by the hit counter)
# ---------------------------------------------------------------------------
window_total = Gauge(
    "hits_window_total",
    "Hits in the trailing window at the last total query",
)
window_group = Gauge(
    "hits_window_group",
    "Hits per group in the trailing window at the last group query",
    ["group"],
)
window_user = Gauge(
    "hits_window_user",
    "Per-user hits within a group at the last breakdown query",
    ["group", "user"],
)

# ---------------------------------------------------------------------------
# Throughput
# ---------------------------------------------------------------------------
messages_per_second = Gauge(
    "hits_messages_per_second",
    "Current message processing rate",
)
export_errors_total = Counter(
    "hits_export_errors_total",
    "JSON parse or Kafka consumer errors in the exporter",
)

# Users currently exported per group, so labels that drop out of a newer
# breakdown can be removed instead of freezing at their last value.
_exported_users: dict[str, set[str]] = {}

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down exporter...")
    running = False


# ---------------------------------------------------------------------------
# Metric updaters
# ---------------------------------------------------------------------------

def _process_command(line: str):
    """Update Prometheus metrics for a raw command line."""
    parsed = parse_command(line)
    if parsed is None:
        return
    if isinstance(parsed, ParseFailure):
        command_errors_total.labels(kind=parsed.kind).inc()
        return
    commands_total.labels(command=parsed.name).inc()


def _process_result(result: dict):
    """Update Prometheus gauges for a published query result."""
    if "totals" in result:
        group = result.get("group", "unknown")
        totals = result["totals"]
        for user, count in totals.items():
            window_user.labels(group=group, user=user).set(count)
        for user in _exported_users.get(group, set()) - totals.keys():
            window_user.remove(group, user)
        _exported_users[group] = set(totals)
    elif "group" in result:
        window_group.labels(group=result["group"]).set(result.get("total", 0))
    elif "total" in result:
        window_total.set(result["total"])


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="Prometheus metrics exporter")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--commands-topic", default="hit-commands")
    parser.add_argument("--results-topic", default="hit-results")
    parser.add_argument(
        "--port", type=int, default=9090, help="Prometheus metrics HTTP port",
    )
    args = parser.parse_args()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    # Daemon thread serving /metrics from the global registry.
    start_http_server(args.port)
    print(f"Prometheus metrics server started on :{args.port}")

    consumer = Consumer({
        "bootstrap.servers": args.bootstrap_servers,
        "group.id": "hits-metrics-exporter",
        "auto.offset.reset": "latest",
        "enable.auto.commit": True,
    })
    consumer.subscribe([args.commands_topic, args.results_topic])

    count = 0
    window_start = time.time()
    window_count = 0

    print(f"Exporter consuming from {args.commands_topic} + {args.results_topic} ...")

    try:
        while running:
            msg = consumer.poll(1.0)
            if msg is None:
                continue
            if msg.error():
                if msg.error().code() == KafkaError._PARTITION_EOF:
                    continue
                export_errors_total.inc()
                print(f"Consumer error: {msg.error()}", file=sys.stderr)
                continue

            topic = msg.topic()
            try:
                text = msg.value().decode("utf-8")
                if topic == args.commands_topic:
                    _process_command(text)
                elif topic == args.results_topic:
                    _process_result(json.loads(text))
            except (json.JSONDecodeError, UnicodeDecodeError, AttributeError, TypeError):
                export_errors_total.inc()
                continue

            count += 1
            window_count += 1

            # Update throughput gauge roughly every second
            now = time.time()
            elapsed = now - window_start
            if elapsed >= 1.0:
                messages_per_second.set(window_count / elapsed)
                window_start = now
                window_count = 0

            if count % 5000 == 0:
                print(f"  ... {count} messages exported to metrics")
    finally:
        consumer.close()
        print(f"Exporter done. {count} messages processed.")


if __name__ == "__main__":
    main()
