from external import build_database_user, build_kafka_user, build_onepassword_item


class TestOnePasswordItem:
    def test_created_with_item_path(self, make_app):
        item = build_onepassword_item(make_app(onePassword={"itemPath": "vaults/aks/items/test"}))

        assert item["apiVersion"] == "onepassword.com/v1"
        assert item["kind"] == "OnePasswordItem"
        assert item["metadata"]["name"] == "test-op"
        assert item["metadata"]["namespace"] == "test-ns"
        assert item["metadata"]["ownerReferences"][0]["name"] == "test"
        assert item["spec"] == {"itemPath": "vaults/aks/items/test"}

    def test_absent_when_not_configured(self, make_app):
        assert build_onepassword_item(make_app()) is None


class TestDatabaseUser:
    def test_created_with_database(self, make_app):
        user = build_database_user(make_app(database={"database": "test-db"}))

        assert user["apiVersion"] == "fintlabs.no/v1alpha1"
        assert user["kind"] == "PGUser"
        assert user["metadata"]["name"] == "test-db"
        assert user["spec"] == {"database": "test-db"}

    def test_absent_when_not_configured(self, make_app):
        assert build_database_user(make_app()) is None


class TestKafkaUser:
    def test_created_with_acls(self, make_app):
        acls = [{"topic": "test-topic", "permission": "write"}, {"topic": "other", "permission": "read"}]
        user = build_kafka_user(make_app(kafka={"acls": acls}))

        assert user["apiVersion"] == "fintlabs.no/v1alpha1"
        assert user["kind"] == "KafkaUserAndAcl"
        assert user["metadata"]["name"] == "test-kafka"
        assert user["spec"] == {"acls": acls}

    def test_absent_without_acls(self, make_app):
        assert build_kafka_user(make_app(kafka={"acls": []})) is None

    def test_absent_when_not_configured(self, make_app):
        assert build_kafka_user(make_app()) is None
