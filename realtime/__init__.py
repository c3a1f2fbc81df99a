"""Realtime feed: state, access rules and Socket.IO handlers."""
