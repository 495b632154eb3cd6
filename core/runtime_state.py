from threading import Lock


class RuntimeState:
    """Handles to the live display components, shared with the HTTP API."""

    def __init__(self):
        self.lock = Lock()
        self.phase_engine = None
        self.simulation = None
        self.projector = None
        self.dispatcher = None
        self.channel = None
        self.location = None
        self.last_sim_state = None

    def attach(self, **components):
        with self.lock:
            for name, value in components.items():
                if not hasattr(self, name):
                    raise AttributeError(f"Unknown runtime component: {name}")
                setattr(self, name, value)

    def reset(self):
        self.__init__()


state = RuntimeState()
