"""Use-cases: relay client, session bootstrap, account endpoints, settings I/O."""
