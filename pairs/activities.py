"""Temporal activities for the Pairs memory game."""
from temporalio import activity

from pairs.types import WinAnnouncement


def win_message(elapsed_seconds: float) -> str:
    return f"You've won in {elapsed_seconds:0.2f} seconds!"


@activity.defn
async def announce_win(announcement: WinAnnouncement) -> str:
    """Announce a cleared board and return the message shown to the player."""
    message = win_message(announcement.elapsed_seconds)
    activity.logger.info(
        f"Game {announcement.game_id} ({announcement.board_size}x{announcement.board_size}): {message}"
    )
    return message
