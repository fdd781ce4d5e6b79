from storage.run_store import RunStore
