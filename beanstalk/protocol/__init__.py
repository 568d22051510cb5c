"""Beanstalk wire protocol: command encoding, response framing and status mapping."""
