from rpm_builder.polling.poller import BuildPoller, PollHandle

__all__ = ["BuildPoller", "PollHandle"]
