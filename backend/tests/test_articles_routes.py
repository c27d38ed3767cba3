from conftest import register_payload

ARTICLE = {
    "title": "Ten SEO strategies",
    "content": "Body of the article",
    "keywords": ["seo", "content"],
}


def other_user_headers(client):
    response = client.post("/api/auth/register", json=register_payload(email="eve@example.com"))
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_create_and_fetch_article(client, registered_user):
    user, headers = registered_user

    created = client.post("/api/articles/", json=ARTICLE, headers=headers)

    assert created.status_code == 201
    article = created.json()
    assert article["userId"] == user["id"]
    assert article["status"] == "draft"
    assert article["keywords"] == ["seo", "content"]

    fetched = client.get(f"/api/articles/{article['id']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Ten SEO strategies"


def test_list_filters_by_status(client, registered_user):
    _, headers = registered_user
    client.post("/api/articles/", json=ARTICLE, headers=headers)
    client.post("/api/articles/", json={**ARTICLE, "title": "Published piece", "status": "published"}, headers=headers)

    everything = client.get("/api/articles/", headers=headers).json()
    published = client.get("/api/articles/", params={"status": "published"}, headers=headers).json()

    assert len(everything) == 2
    assert [article["title"] for article in published] == ["Published piece"]


def test_update_article(client, registered_user):
    _, headers = registered_user
    article_id = client.post("/api/articles/", json=ARTICLE, headers=headers).json()["id"]

    response = client.put(
        f"/api/articles/{article_id}",
        json={"status": "published", "seoScore": 87},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "published"
    assert body["seoScore"] == 87
    assert body["title"] == ARTICLE["title"]


def test_delete_article(client, registered_user):
    _, headers = registered_user
    article_id = client.post("/api/articles/", json=ARTICLE, headers=headers).json()["id"]

    assert client.delete(f"/api/articles/{article_id}", headers=headers).status_code == 200
    assert client.get(f"/api/articles/{article_id}", headers=headers).status_code == 404


def test_articles_are_private_to_their_owner(client, registered_user):
    _, headers = registered_user
    article_id = client.post("/api/articles/", json=ARTICLE, headers=headers).json()["id"]
    eve = other_user_headers(client)

    assert client.get(f"/api/articles/{article_id}", headers=eve).status_code == 404
    assert client.put(f"/api/articles/{article_id}", json={"status": "archived"}, headers=eve).status_code == 404
    assert client.delete(f"/api/articles/{article_id}", headers=eve).status_code == 404
    assert client.get("/api/articles/", headers=eve).json() == []


def test_short_title_is_400(client, registered_user):
    _, headers = registered_user
    response = client.post("/api/articles/", json={**ARTICLE, "title": "Hi"}, headers=headers)
    assert response.status_code == 400


def test_articles_require_session(client):
    assert client.get("/api/articles/").status_code == 401
