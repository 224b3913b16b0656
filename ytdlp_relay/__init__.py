"""Stream yt-dlp output straight to the browser as a file download."""

__version__ = '1.0.0'
