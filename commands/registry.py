from .command_dispatcher import CommandDispatcher
from services.backup_services import BackupService

def build_dispatcher(backup_service: BackupService) -> CommandDispatcher:
    dispatcher = CommandDispatcher()

    dispatcher.register_command("backup", backup_service.backup)
    dispatcher.register_command("flush-logs", backup_service.flush_logs)
    dispatcher.register_command("recreate", backup_service.recreate)
    dispatcher.register_command("replay", backup_service.replay)

    return dispatcher
