import meta
from composer import compose, compose_env, compose_env_from, compose_image_pull_secrets


def env_pairs(env):
    return [(e.name, e.value) for e in env]


class TestEnv:
    def test_default_env(self, make_app):
        assert env_pairs(compose_env(make_app())) == [("fint.org-id", "test.org"), ("TZ", "Europe/Oslo")]

    def test_user_env_comes_first_in_order(self, make_app):
        app = make_app(env=[{"name": "key1", "value": "value1"}, {"name": "key2", "value": "value2"}])

        assert env_pairs(compose_env(app)) == [
            ("key1", "value1"),
            ("key2", "value2"),
            ("fint.org-id", "test.org"),
            ("TZ", "Europe/Oslo"),
        ]

    def test_user_org_id_is_not_duplicated(self, make_app):
        app = make_app(env=[{"name": "fint.org-id", "value": "value1"}, {"name": "key2", "value": "value2"}])

        assert env_pairs(compose_env(app)) == [
            ("fint.org-id", "value1"),
            ("key2", "value2"),
            ("TZ", "Europe/Oslo"),
        ]

    def test_user_timezone_is_kept_in_place(self, make_app):
        app = make_app(env=[{"name": "a", "value": "1"}, {"name": "TZ", "value": "UTC"}])

        assert env_pairs(compose_env(app)) == [("a", "1"), ("TZ", "UTC"), ("fint.org-id", "test.org")]

    def test_duplicate_user_entries_pass_through(self, make_app):
        app = make_app(env=[{"name": "a", "value": "1"}, {"name": "a", "value": "2"}])

        assert env_pairs(compose_env(app))[:2] == [("a", "1"), ("a", "2")]

    def test_base_path_env(self, make_app):
        app = make_app(url={"basePath": "/test"})

        assert env_pairs(compose_env(app)) == [
            ("fint.org-id", "test.org"),
            ("TZ", "Europe/Oslo"),
            ("spring.webflux.base-path", "/test"),
            ("spring.mvc.servlet.path", "/test"),
        ]

    def test_base_path_env_uses_first_of_list(self, make_app):
        app = make_app(url={"basePath": ["/first", "/second"]})

        assert env_pairs(compose_env(app))[2:] == [
            ("spring.webflux.base-path", "/first"),
            ("spring.mvc.servlet.path", "/first"),
        ]

    def test_missing_org_id_label_skips_org_id(self, make_app):
        app = make_app(metadata={"labels": {"fintlabs.no/team": "test"}})

        assert env_pairs(compose_env(app)) == [("TZ", "Europe/Oslo")]

    def test_value_from_passes_through(self, make_app):
        value_from = {"secretKeyRef": {"name": "s", "key": "k"}}
        app = make_app(env=[{"name": "secret", "valueFrom": value_from}])

        env = meta.serialize(compose_env(app))
        assert "value" not in env[0]
        assert env[0]["valueFrom"] == value_from


class TestEnvFrom:
    def names(self, app):
        return [e.secret_ref.name for e in compose_env_from(app)]

    def test_no_sources(self, make_app):
        assert self.names(make_app()) == []

    def test_onepassword(self, make_app):
        assert self.names(make_app(onePassword={"itemPath": "vaults/test/items/test"})) == ["test-op"]

    def test_database(self, make_app):
        assert self.names(make_app(database={"database": "test-db"})) == ["test-db"]

    def test_kafka(self, make_app):
        app = make_app(kafka={"acls": [{"topic": "test-topic", "permission": "write"}]})
        assert self.names(app) == ["test-kafka"]

    def test_kafka_without_acls(self, make_app):
        assert self.names(make_app(kafka={"acls": []})) == []

    def test_all_sources_in_fixed_order(self, make_app):
        app = make_app(
            kafka={"acls": [{"topic": "t", "permission": "read"}]},
            database={"database": "test-db"},
            onePassword={"itemPath": "p"},
        )
        assert self.names(app) == ["test-op", "test-db", "test-kafka"]


class TestVolumes:
    def test_no_volumes_without_kafka(self, make_app):
        composition = compose(make_app())
        assert composition.volumes == []
        assert composition.volume_mounts == []

    def test_kafka_credentials_volume(self, make_app):
        composition = compose(make_app(kafka={"acls": [{"topic": "test-topic", "permission": "write"}]}))

        assert len(composition.volumes) == 1
        assert composition.volumes[0].name == "credentials"
        assert composition.volumes[0].secret.secret_name == "test-kafka-certificates"
        assert len(composition.volume_mounts) == 1
        assert composition.volume_mounts[0].name == "credentials"
        assert composition.volume_mounts[0].mount_path == "/credentials"
        assert composition.volume_mounts[0].read_only is True


class TestImagePullSecrets:
    def test_defaults(self, make_app):
        assert compose_image_pull_secrets(make_app()) == ["reg-key-1", "reg-key-2"]

    def test_user_secrets_precede_defaults(self, make_app):
        app = make_app(imagePullSecrets=["test-secret", "other"])
        assert compose_image_pull_secrets(app) == ["test-secret", "other", "reg-key-1", "reg-key-2"]

    def test_default_named_by_user_is_not_repeated(self, make_app):
        app = make_app(imagePullSecrets=["reg-key-2", "test-secret"])
        assert compose_image_pull_secrets(app) == ["reg-key-2", "test-secret", "reg-key-1"]
