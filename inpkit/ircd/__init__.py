"""A minimal IRC daemon: protocol helpers, in-memory state and the server loop."""