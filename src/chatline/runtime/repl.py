import logging

from chatline.runtime.builtins import BuiltinCommands

logger = logging.getLogger(__name__)


class ChatREPL:
    def __init__(self, session, renderer, input_fn=input):
        self.session = session
        self.renderer = renderer
        self.builtins = BuiltinCommands(session, renderer)
        self._input = input_fn

    def run(self, initial_message: str | None = None) -> None:
        print(f"💬 chatline connected to {self.session.transport.config.endpoint}")
        print("Commands: /help for all commands")
        print()

        if initial_message:
            self.session.submit(initial_message)

        while True:
            try:
                user_input = self._input("\n> ")

                if not user_input.strip():
                    continue

                if not self.dispatch(user_input):
                    break

            except KeyboardInterrupt:
                print("\n\n⚠️  Interrupted")
                break
            except EOFError:
                break
            except Exception as e:
                print(f"\n❌ Error: {e}")
                logger.exception("Unhandled error in REPL loop")

    def dispatch(self, user_input: str) -> bool:
        """Run a slash command or submit a prompt. Returns False to stop the loop."""
        command = user_input.strip()
        if not command.startswith("/"):
            # Prompts go out exactly as typed.
            self.session.input_buffer = user_input
            self.session.submit()
            return True

        name, _, args = command[1:].partition(" ")
        if not self.builtins.has_command(name):
            print(f"Unknown command: /{name}. Type /help for available commands.")
            return True
        return self.builtins.handle(name, args.strip())
