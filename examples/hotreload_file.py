import json
import os
import tempfile

from abacx import AbilityCache, Evaluator, HotReloader, RecordPolicy, define_rules
from abacx.storage import FilePolicySource, atomic_write


def _rules(effect: str) -> dict:
    return {
        "rules": [
            {"id": "r1", "effect": "allow", "role": "reader", "action": "read", "subject": "document"},
            {"id": "r2", "effect": effect, "role": "reader", "action": "read", "subject": "document",
             "conditions": {"archived": True}},
        ]
    }


def main() -> None:
    fd, path = tempfile.mkstemp(suffix=".json")
    os.close(fd)
    try:
        atomic_write(path, json.dumps(_rules("allow")))

        policy = RecordPolicy()
        abilities = AbilityCache(lambda p: Evaluator(define_rules(p, policy)), ttl=60)
        policy.subscribe(abilities.clear)

        reloader = HotReloader(policy, FilePolicySource(path), initial_load=True)
        reloader.check_and_reload()

        user = {"id": "u1", "role": "reader"}
        print("before:", abilities.get(user).can("read", "document", {"archived": True}))

        atomic_write(path, json.dumps(_rules("deny")))
        reloader.check_and_reload()
        print("after:", abilities.get(user).can("read", "document", {"archived": True}))
    finally:
        os.remove(path)


if __name__ == "__main__":
    main()
