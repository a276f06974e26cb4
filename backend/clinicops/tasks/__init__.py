"""Background tasks: hold expiry sweep and scheduling event relay."""
