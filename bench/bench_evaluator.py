import argparse
import statistics
import time

from abacx import Evaluator, PredicateCompiler, define_rules


def make_policy(n: int):
    def policy(allow, deny, user):
        for i in range(n - 1):
            allow("read", "document", {"k": i})
        deny("read", "document", {"archived": True})

    return policy


def run(size: int, iters: int):
    store = define_rules({"id": "u"}, make_policy(size))
    ev = Evaluator(store)
    resource = {"k": size // 2, "archived": False}
    lat = []
    for _ in range(iters):
        t0 = time.perf_counter()
        allowed = ev.can("read", "document", resource)
        lat.append((time.perf_counter() - t0) * 1000.0)

    t0 = time.perf_counter()
    PredicateCompiler(store).filter("read", "document", ["k", "archived"])
    compile_ms = (time.perf_counter() - t0) * 1000.0
    return {
        "p50": statistics.median(lat),
        "avg": sum(lat) / len(lat),
        "p90": percentile(lat, 90),
        "compile": compile_ms,
        "allowed": allowed,
    }


def percentile(arr, p):
    arr2 = sorted(arr)
    k = int(round((p / 100.0) * (len(arr2) - 1)))
    return arr2[k]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--sizes", type=int, nargs="+", default=[10, 50, 100, 500, 1000])
    ap.add_argument("--iters", type=int, default=200)
    args = ap.parse_args()
    print("size,avg_ms,p50_ms,p90_ms,compile_ms,allowed")
    for s in args.sizes:
        r = run(s, args.iters)
        print(f"{s},{r['avg']:.3f},{r['p50']:.3f},{r['p90']:.3f},{r['compile']:.3f},{r['allowed']}")


if __name__ == "__main__":
    main()
