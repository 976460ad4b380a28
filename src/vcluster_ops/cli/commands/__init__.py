"""vcluster-ops subcommands."""
