from chatline.errors import SessionBusyError


class BuiltinCommands:
    def __init__(self, session, renderer):
        self.session = session
        self.renderer = renderer
        self._handlers = {
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
            "clear": self.cmd_clear,
            "history": self.cmd_history,
            "endpoint": self.cmd_endpoint,
            "help": self.cmd_help,
        }

    def list_commands(self) -> list[str]:
        return sorted(self._handlers.keys())

    def has_command(self, name: str) -> bool:
        return name in self._handlers

    def handle(self, name: str, args: str) -> bool:
        handler = self._handlers.get(name)
        if not handler:
            return True
        return handler(args)

    def cmd_quit(self, args: str) -> bool:
        print("👋 Goodbye!")
        return False

    def cmd_clear(self, args: str) -> bool:
        try:
            self.session.reset()
        except SessionBusyError as e:
            print(f"❌ {e}")
        return True

    def cmd_history(self, args: str) -> bool:
        self.renderer.print_history()
        return True

    def cmd_endpoint(self, args: str) -> bool:
        print(f"Endpoint: {self.session.transport.config.endpoint}")
        return True

    def cmd_help(self, args: str) -> bool:
        print("\nCommands:")
        for name in self.list_commands():
            print(f"  /{name}")
        print()
        return True
