from enum import Enum

from abacx import Evaluator, ForbiddenError, RolePolicies, define_rules


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


def admin(allow, deny, user):
    allow("manage", "all")


def editor(allow, deny, user):
    allow("read", ["document", "comment"])
    allow(["update", "delete"], "document", {"authorId": user["id"]})
    deny("delete", "document", {"status": "published"})


def viewer(allow, deny, user):
    allow("read", "document", {"status": "published"})


POLICIES = RolePolicies(Role, {Role.ADMIN: admin, Role.EDITOR: editor, Role.VIEWER: viewer})


def main() -> None:
    ev = Evaluator(define_rules({"id": 7, "role": "editor"}, POLICIES))
    print(ev.can("delete", "document", {"authorId": 7, "status": "draft"}))  # True
    try:
        ev.authorize("delete", "document", {"authorId": 7, "status": "published"})
    except ForbiddenError as e:
        print(e)


if __name__ == "__main__":
    main()
