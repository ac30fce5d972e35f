from colorama import Fore, Style

from .logging import highlight_paths


class ProgressDisplay:
    """Display build progress with colors."""

    STAGE_COLORS = {
        'CLEAR': Fore.WHITE,
        'COPY_MANIFEST': Fore.CYAN,
        'LOCALES': Fore.CYAN,
        'IMAGES': Fore.BLUE,
        'SVG': Fore.BLUE,
        'ICONS': Fore.BLUE,
        'HTML': Fore.MAGENTA,
        'CSS': Fore.MAGENTA,
        'CONTENT_SCRIPTS': Fore.YELLOW,
        'BACKGROUND_SCRIPT': Fore.YELLOW,
        'DEPENDENCIES': Fore.YELLOW,
        'PACKAGE': Fore.GREEN,
        'COMPLETE': Fore.GREEN,
    }

    @staticmethod
    def show(stage: str, message: str):
        """Print one '[STAGE] message' line; the stage name is colored by step family."""
        color = ProgressDisplay.STAGE_COLORS.get(stage, Fore.WHITE)
        print(f"{color}[{stage}]{Style.RESET_ALL} {highlight_paths(message)}")
