"""Agent/controller messaging.

**Message channel** — request/response commands from the controller bridge
to the automation agent, and fire-and-forget events back. See
``chasecatcher.monitoring.channel`` for details.

Usage::

    from chasecatcher.monitoring.channel import LoggingListener, MessageChannel

    channel = MessageChannel(request_timeout_ms=5000)
    channel.connect(agent.handle_command)
    channel.subscribe(LoggingListener())
    reply = await channel.request({"action": "getStatus"})
"""
