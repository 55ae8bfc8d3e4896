from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_bets import register as register_bets
from misc.commands.commands_birthdays import register as register_birthdays
from misc.commands.commands_features import register as register_features
from misc.commands.commands_fun import register as register_fun
from misc.commands.commands_owner import register as register_owner
from misc.commands.commands_reaction_roles import register as register_reaction_roles
from misc.commands.commands_reminders import register as register_reminders
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    db_lock,
    db_conn,
    user_is_owner,
    send_chunked,
    list_schema_migrations_sync,
    read_man_page,
    command_prefix: str,
    timezone_name: str,
    reaction_roles,
    bet_service,
    activity,
    reminder_loop_func,
    bet_loop_func,
    birthday_loop_func,
    access_enabled: bool,
    access_loop_func,
) -> None:
    command_deps = CommandDeps(
        db_lock=db_lock,
        db_conn=db_conn,
        send_chunked=send_chunked,
        wait_for=bot.wait_for,
        client=bot,
        command_prefix=command_prefix,
        timezone_name=timezone_name,
        list_schema_migrations_sync=list_schema_migrations_sync,
        read_man_page=read_man_page,
        reaction_roles=reaction_roles,
        bet_service=bet_service,
    )
    command_gates = CommandGates(
        user_is_owner=user_is_owner,
    )

    for register in (
        register_owner,
        register_reaction_roles,
        register_reminders,
        register_bets,
        register_birthdays,
        register_features,
        register_fun,
    ):
        register(
            bot,
            deps=command_deps,
            gates=command_gates,
        )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            db_lock=db_lock,
            db_conn=db_conn,
            user_is_owner=user_is_owner,
            reaction_roles=reaction_roles,
            activity=activity,
        ),
        boot=RuntimeBootDeps(
            reminder_loop_func=reminder_loop_func,
            bet_loop_func=bet_loop_func,
            birthday_loop_func=birthday_loop_func,
            access_enabled=access_enabled,
            access_loop_func=access_loop_func,
        ),
    )
