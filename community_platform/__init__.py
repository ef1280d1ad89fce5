"""Community platform — identity, session, and audit core."""
