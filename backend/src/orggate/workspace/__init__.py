"""Workspace selection: web session workspaces and channel workspace binding."""
