# ABOUTME: Subcommands of the bookfeed CLI.
# ABOUTME: One module per command, registered on the root group in bookfeed.cli.
