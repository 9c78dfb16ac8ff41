"""Simple consumer for eyeballing published hit counter results.

Usage:
    python consumer.py
    python consumer.py --bootstrap-servers kafka-1:29092 --topic hit-results
"""

import argparse
import signal

from confluent_kafka import Consumer

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down consumer...")
    running = False


signal.signal(signal.SIGINT, _shutdown)
signal.signal(signal.SIGTERM, _shutdown)


def main():
    parser = argparse.ArgumentParser(description="Hit counter results consumer")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="hit-results")
    parser.add_argument("--group-id", default="hit-results-debug")
    args = parser.parse_args()

    consumer = Consumer({
        "bootstrap.servers": args.bootstrap_servers,
        "group.id": args.group_id,
        "auto.offset.reset": "earliest",
        "enable.auto.commit": True,
    })
    consumer.subscribe([args.topic])

    count = 0
    try:
        while running:
            msg = consumer.poll(1.0)
            if msg is None:
                continue
            if msg.error():
                print(f"Consumer error: {msg.error()}")
                continue

            key = (msg.key() or b"").decode("utf-8", errors="replace")
            value = (msg.value() or b"").decode("utf-8", errors="replace")
            count += 1
            print(f"[partition={msg.partition()}] {key:<16s} {value}")

            if count % 500 == 0:
                print(f"  ... {count} results consumed")
    finally:
        consumer.close()
        print(f"Done. {count} results consumed.")


if __name__ == "__main__":
    main()
