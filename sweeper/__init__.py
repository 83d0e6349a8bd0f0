"""Sweeper: bulk operations on GitHub issues and pull requests.

Runs operations one-shot from the command line, from batch files, or as a
daemon reacting to GitHub webhooks, queued events and cron schedules.
"""

__version__ = "0.1.0"
