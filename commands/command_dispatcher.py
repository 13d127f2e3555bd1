from custom_logging import OperationReport


class CommandDispatcher:
    def __init__(self):
        self.commands = {}

    def register_command(self, command_name: str, handler):
        self.commands[command_name.lower()] = handler

    @property
    def command_names(self) -> list[str]:
        return sorted(self.commands)

    def dispatch(self, command_name: str) -> OperationReport:
        """Run a registered command and return its report"""
        command_name = command_name.lower().replace("_", "-")
        aliases = {
            "restore": "recreate",
            "incremental": "flush-logs",
        }
        command_name = aliases.get(command_name, command_name)

        if command_name not in self.commands:
            raise ValueError(f"Command '{command_name}' not recognized.")
        return self.commands[command_name]()
