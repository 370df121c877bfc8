"""Room reservation domain: booking models and the offline booking queue."""
