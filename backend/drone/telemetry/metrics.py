from prometheus_client import Counter, Histogram

# --------------------------------------------------
# Drone Protocol Metrics
# --------------------------------------------------

drone_registrations_total = Counter(
    name="drone_registrations_total",
    documentation="Total number of registration messages sent",
)

drone_messages_total = Counter(
    name="drone_messages_total",
    documentation="Inbound messages by outcome",
    labelnames=["outcome"],
)

# --------------------------------------------------
# Simulated Reaction Metrics
# --------------------------------------------------

drone_reaction_wait_seconds = Histogram(
    name="drone_reaction_wait_seconds",
    documentation="Simulated reaction delay per handled message",
    buckets=(0.05, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
)
