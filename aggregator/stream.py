"""Streaming hit counter — reads command lines from Kafka, publishes results.

Consumes hit-commands (one UTF-8 command line per message), runs each line
against a single in-memory aggregator, and publishes every query result as
a JSON message to the results topic.  Time advances only through the
timestamps inside the commands, so the window is independent of consumer lag.

One consumer instance owns one aggregator.  Run a single replica per
command stream: aggregates are not shared across instances.

Usage:
    python -m aggregator.stream
    python -m aggregator.stream --bootstrap-servers kafka-1:29092 --input-topic hit-commands
    python -m aggregator.stream --config config/aggregator.yml --on-error warn
"""

import argparse
import json
import signal
import sys

from confluent_kafka import Consumer, Producer, KafkaError
from confluent_kafka.admin import AdminClient, NewTopic

from aggregator.config import apply_overrides, load_settings
from aggregator.engine import ERROR_POLICIES, CommandEngine, TotalCount, handle_line
from aggregator.formatting import to_payload

TOTAL_KEY = "_total"

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down hit counter...")
    running = False


def _ensure_topic(bootstrap_servers, topic):
    """Create the output topic if it doesn't already exist."""
    admin = AdminClient({"bootstrap.servers": bootstrap_servers})
    fs = admin.create_topics([NewTopic(topic, num_partitions=3, replication_factor=3)])
    for t, f in fs.items():
        try:
            f.result()
            print(f"Created topic '{t}'")
        except Exception as e:
            if "TOPIC_ALREADY_EXISTS" in str(e):
                print(f"Topic '{t}' already exists")
            else:
                raise


def process_message(engine, raw: bytes, on_error: str):
    """Run one command message.  Returns (key, value) to publish, or None.

    Undecodable bytes are replaced rather than rejected, so a garbled line
    goes through the same error policy as any other malformed line.
    Tombstones (no value) are ignored.
    """
    if raw is None:
        return None
    line = raw.decode("utf-8", errors="replace")
    result, _ = handle_line(engine, line, on_error)
    if result is None:
        return None

    if isinstance(result, TotalCount):
        key = TOTAL_KEY
    else:
        key = result.group
    payload = to_payload(result, engine.window_seconds)
    payload["ts"] = result.ts
    return key, json.dumps(payload, separators=(",", ":")).encode("utf-8")


def main():
    parser = argparse.ArgumentParser(description="Streaming hit counter")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--bootstrap-servers", default=None)
    parser.add_argument("--input-topic", default=None)
    parser.add_argument("--output-topic", default=None)
    parser.add_argument("--group-id", default=None)
    parser.add_argument("--window-seconds", type=int, default=None)
    parser.add_argument("--on-error", choices=ERROR_POLICIES, default=None)
    args = parser.parse_args()

    s = apply_overrides(
        load_settings(args.config),
        bootstrap_servers=args.bootstrap_servers,
        input_topic=args.input_topic,
        output_topic=args.output_topic,
        group_id=args.group_id,
        window_seconds=args.window_seconds,
        on_error=args.on_error,
    )

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    _ensure_topic(s.bootstrap_servers, s.output_topic)

    consumer = Consumer({
        "bootstrap.servers": s.bootstrap_servers,
        "group.id": s.group_id,
        "auto.offset.reset": "earliest",
        "enable.auto.commit": True,
    })
    consumer.subscribe([s.input_topic])

    producer = Producer({"bootstrap.servers": s.bootstrap_servers})

    engine = CommandEngine(s.window_seconds)
    consumed = 0
    published = 0

    print(f"Hit counter started  input={s.input_topic}  output={s.output_topic}  "
          f"window={s.window_seconds}s  on_error={s.on_error}")

    try:
        while running:
            msg = consumer.poll(1.0)
            if msg is None:
                continue
            if msg.error():
                if msg.error().code() == KafkaError._PARTITION_EOF:
                    continue
                print(f"Consumer error: {msg.error()}", file=sys.stderr)
                continue

            consumed += 1
            out = process_message(engine, msg.value(), s.on_error)
            if out is not None:
                key, value = out
                producer.produce(s.output_topic, key=key.encode("utf-8"), value=value)
                producer.poll(0)
                published += 1

            # Batch flush every 1000 commands (producer buffers internally)
            if consumed % 1000 == 0:
                producer.flush()

            if consumed % 500 == 0:
                print(f"  ... {consumed} commands consumed, {published} results published, "
                      f"{len(engine.aggregator)} hits in window")
    finally:
        producer.flush()
        consumer.close()
        print(f"Done. {consumed} commands consumed, {published} results published.")


if __name__ == "__main__":
    main()
