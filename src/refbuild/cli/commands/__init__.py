"""refbuild CLI subcommands."""
