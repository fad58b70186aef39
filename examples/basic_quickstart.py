from abacx import Ability, Resource


def document_policy(allow, deny, user):
    allow("read", "document", {"status": "published"}, fields=["title", "content"])
    allow("read", "document", {"authorId": user["id"]})
    allow("update", "document", {"authorId": user["id"]})
    deny("update", "document", {"status": "archived"})


def main() -> None:
    ability = Ability.for_principal({"id": 7, "role": "editor"}, document_policy)

    own_draft = Resource("document", {"authorId": 7, "status": "draft", "title": "A"})
    archived = Resource("document", {"authorId": 7, "status": "archived"})
    published = Resource(
        "document", {"authorId": 1, "status": "published", "title": "B", "internalNotes": "x"}
    )

    print(ability.can("update", "document", own_draft))  # True
    print(ability.can("update", "document", archived))  # False
    print(ability.filter_fields(published))  # {'title': 'B'}
    print(ability.filter("read", "document", ["id", "status", "authorId"]).to_dict())


if __name__ == "__main__":
    main()
