# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from datetime import timedelta

# Third-Party Imports
from rich.progress import (
    BarColumn, Progress, ProgressColumn, SpinnerColumn, Task, TextColumn
)
from rich.text import Text

# Local Imports
from soil_mags import constants

# ============================== CUSTOM PROGRESS COLUMNS ============================= #

class MofNCompleteColumn(ProgressColumn):
    """Renders completed count/total (e.g., '2/3')"""

    def render(self, task: Task) -> Text:
        return Text(
            f"{task.completed:g}/{task.total:g}".rjust(7),
            style=constants.DEFAULT_M_OF_N_COMPLETE_STYLE,
            justify="right"
        )


class TimeElapsedColumn(ProgressColumn):
    """Renders time elapsed."""

    def render(self, task: Task) -> Text:
        elapsed = task.finished_time if task.finished else task.elapsed
        if elapsed is None:
            return Text("-:--:--", style=constants.DEFAULT_TIME_ELAPSED_STYLE)
        delta = timedelta(seconds=max(0, int(elapsed)))
        return Text(str(delta), style=constants.DEFAULT_TIME_ELAPSED_STYLE)

# ===================================== FUNCTIONS ==================================== #

def get_progress_bar(transient: bool = False) -> Progress:
    """Return a progress bar styled from `constants`."""
    return Progress(
        SpinnerColumn(
            "dots",
            style=constants.DEFAULT_BAR_COLUMN_COMPLETE_STYLE,
            speed=0.75
        ),
        TextColumn(
            "{task.description}",
            style=constants.DEFAULT_DESCRIPTION_STYLE,
            justify="left"
        ),
        MofNCompleteColumn(),
        BarColumn(
            bar_width=constants.DEFAULT_BAR_WIDTH,
            style="black",
            complete_style=constants.DEFAULT_BAR_COLUMN_COMPLETE_STYLE,
            finished_style=constants.DEFAULT_FINISHED_STYLE
        ),
        TimeElapsedColumn(),
        transient=transient,
        expand=False
    )


def format_task_desc(desc: str) -> str:
    return f"{str(desc):<{constants.DEFAULT_PROGRESS_TEXT_N}}"
