"""Synthetic hit command generator.

Simulates traffic from a weighted pool of groups and users on an integer
second clock, interleaving hits with periodic total/group/users queries.
Timestamps never go backwards, matching what the aggregator expects.

Output goes either to Kafka (one command line per message) or to stdout,
so a stream can be replayed straight into the CLI.

Usage:
    python producer.py
    python producer.py --stdout --seconds 300 --seed 7 | python -m aggregator.main
    python producer.py --eps 100 --topic hit-commands --anonymous-rate 0.3
"""

import argparse
import random
import signal
import sys
import time
from dataclasses import dataclass

from confluent_kafka import Producer
from confluent_kafka.admin import AdminClient, NewTopic

GROUPS = ["trip", "search", "checkout", "login", "profile"]

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down generator...", file=sys.stderr)
    running = False


# ---------------------------------------------------------------------------
# Traffic profile
# ---------------------------------------------------------------------------

@dataclass
class Profile:
    groups: list[str]
    group_weights: list[float]
    users: list[str]
    user_weights: list[float]
    anonymous_rate: float  # fraction of hits recorded without a user


def _create_profile(rng, n_users, anonymous_rate):
    """Skewed pool: a few hot groups and users, a long tail of quiet ones."""
    users = [f"user_{i:04d}" for i in range(1, n_users + 1)]
    return Profile(
        groups=list(GROUPS),
        group_weights=[rng.uniform(1, 10) for _ in GROUPS],
        users=users,
        user_weights=[rng.paretovariate(1.5) for _ in users],
        anonymous_rate=anonymous_rate,
    )


# ---------------------------------------------------------------------------
# Command generation
# ---------------------------------------------------------------------------

def _make_hit(rng, profile, ts):
    group = rng.choices(profile.groups, weights=profile.group_weights, k=1)[0]
    if rng.random() < profile.anonymous_rate:
        return f"hit {ts} {group}"
    user = rng.choices(profile.users, weights=profile.user_weights, k=1)[0]
    return f"hit {ts} {group} {user}"


def _make_queries(rng, profile, ts):
    group = rng.choice(profile.groups)
    return [f"total {ts}", f"group {ts} {group}", f"users {ts} {group}"]


def generate(rng, profile, start, seconds, eps, query_every):
    """Yield command lines for *seconds* simulated seconds starting at *start*.

    Each simulated second carries a Poisson-ish number of hits around *eps*;
    every *query_every* seconds a round of queries follows the hits.
    """
    for offset in range(seconds):
        ts = start + offset
        n_hits = max(0, round(rng.gauss(eps, eps ** 0.5)))
        for _ in range(n_hits):
            yield _make_hit(rng, profile, ts)
        if query_every and offset % query_every == query_every - 1:
            yield from _make_queries(rng, profile, ts)


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

def _ensure_topics(bootstrap_servers, topics):
    """Create Kafka topics if they don't already exist."""
    admin = AdminClient({"bootstrap.servers": bootstrap_servers})
    new_topics = [NewTopic(t, num_partitions=1, replication_factor=3) for t in topics]
    fs = admin.create_topics(new_topics)
    for topic, f in fs.items():
        try:
            f.result()
            print(f"Created topic '{topic}'")
        except Exception as e:
            if "TOPIC_ALREADY_EXISTS" in str(e):
                print(f"Topic '{topic}' already exists")
            else:
                raise


def _paced(commands, realtime):
    """Pass lines through, sleeping one real second per simulated second."""
    last_ts = None
    for line in commands:
        if not running:
            return
        ts = int(line.split()[1])
        if realtime and last_ts is not None and ts != last_ts:
            time.sleep(ts - last_ts)
        last_ts = ts
        yield line


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="Synthetic hit command generator")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="hit-commands")
    parser.add_argument("--stdout", action="store_true", default=False,
                        help="Print commands instead of producing to Kafka")
    parser.add_argument("--users", type=int, default=20)
    parser.add_argument("--anonymous-rate", type=float, default=0.2)
    parser.add_argument("--eps", type=float, default=5, help="Hits per simulated second")
    parser.add_argument("--start", type=int, default=1)
    parser.add_argument("--seconds", type=int, default=600)
    parser.add_argument("--query-every", type=int, default=10,
                        help="Simulated seconds between query rounds (0 disables)")
    parser.add_argument("--realtime", action="store_true", default=False,
                        help="Sleep one real second per simulated second")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    signal.signal(signal.SIGINT, _shutdown)   # Ctrl+C (local dev)
    signal.signal(signal.SIGTERM, _shutdown)  # docker stop / k8s pod termination

    rng = random.Random(args.seed)
    profile = _create_profile(rng, args.users, args.anonymous_rate)
    commands = _paced(
        generate(rng, profile, args.start, args.seconds, args.eps, args.query_every),
        args.realtime,
    )

    if args.stdout:
        for line in commands:
            print(line)
        return

    # Single partition: the aggregator relies on commands arriving in order.
    _ensure_topics(args.bootstrap_servers, [args.topic])

    producer = Producer({
        "bootstrap.servers": args.bootstrap_servers,
        "acks": "all",
        "client.id": "hit-command-generator",
    })

    print(f"Generating to topic '{args.topic}' at ~{args.eps} hits per simulated second")
    print(f"Users: {len(profile.users)}  groups: {', '.join(profile.groups)}")

    count = 0
    for line in commands:
        producer.produce(topic=args.topic, value=line.encode("utf-8"))
        producer.poll(0)

        count += 1
        if count % 500 == 0:
            print(f"  ... {count} commands produced")

    producer.flush()
    print(f"Done. {count} commands produced.")


if __name__ == "__main__":
    main()
