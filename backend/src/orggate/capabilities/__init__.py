"""Capability registry and policy evaluation.

Decides whether an org may invoke a capability right now, whether a human
must approve it first, and meters successful invocations against quotas.
"""
