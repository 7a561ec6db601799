"""Provider graph: chain access, caches, token/pool/gas providers and simulators."""
