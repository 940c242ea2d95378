"""
Authentication Tests
Tests for login, token refresh and role checks
"""

import pytest

from training_hub.models.user import AppRole
from training_hub.services.auth_service import auth_service
from training_hub.utils.security import create_access_token

from conftest import auth_headers


@pytest.fixture
def test_user(make_user):
    return make_user("testuser", roles=[AppRole.MANAGER], grade=9)


class TestAuthentication:
    """Test authentication endpoints"""

    def test_login_wrong_password(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            data={
                "username": "testuser",
                "password": "wrongpassword"
            }
        )
        assert response.status_code == 401

    def test_login_nonexistent_user(self, client, test_db):
        response = client.post(
            "/api/auth/login",
            data={
                "username": "nonexistent",
                "password": "password123"
            }
        )
        assert response.status_code == 401

    def test_unauthorized_access(self, client, test_db):
        """Test accessing protected endpoint without token"""
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_login_success(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            data={
                "username": "testuser",
                "password": "testpass123"
            }
        )

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    def test_login_with_email(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            data={"username": "testuser@acme.com", "password": "testpass123"}
        )
        assert response.status_code == 200

    def test_inactive_user_cannot_login(self, client, db, test_user):
        test_user.is_active = False
        db.commit()

        response = client.post(
            "/api/auth/login",
            data={"username": "testuser", "password": "testpass123"}
        )
        assert response.status_code == 401

    def test_get_current_user(self, client, test_user):
        login_response = client.post(
            "/api/auth/login",
            data={
                "username": "testuser",
                "password": "testpass123"
            }
        )
        assert login_response.status_code == 200
        token = login_response.json()["access_token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "testuser"
        assert data["email"] == "testuser@acme.com"
        assert sorted(data["roles"]) == ["employee", "manager"]

    def test_refresh_token(self, client, test_user):
        tokens = auth_service.create_tokens(test_user)

        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert "access_token" in response.json()

    def test_access_token_cannot_refresh(self, client, test_user):
        tokens = auth_service.create_tokens(test_user)

        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == 401

    def test_refresh_token_is_not_an_access_token(self, client, test_user):
        tokens = auth_service.create_tokens(test_user)

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401

    def test_tampered_token_rejected(self, client, test_db):
        token = create_access_token({"sub": "1"}) + "x"

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestRoles:
    """Roles come from the user store, not the token"""

    def test_context_roles(self, test_user):
        ctx = auth_service.build_context(test_user)

        assert ctx.has_role(AppRole.MANAGER)
        assert ctx.has_role("manager")
        assert not ctx.has_role(AppRole.CHRO)
        assert not ctx.is_admin

    def test_admin_passes_any_role_check(self, client, make_user):
        admin = make_user("admin", roles=[AppRole.ADMIN])

        response = client.get("/api/admin/per-diem/grade-bands", headers=auth_headers(admin))

        assert response.status_code == 200

    def test_admin_creates_user_with_roles(self, client, make_user, test_user):
        admin = make_user("admin", roles=[AppRole.ADMIN])

        response = client.post("/api/admin/users", json={
            "email": "new.hire@acme.com",
            "username": "newhire",
            "full_name": "New Hire",
            "employee_number": "EMP900",
            "password": "welcome123",
            "grade": 4,
            "manager_id": test_user.id,
            "roles": ["hrbp"],
        }, headers=auth_headers(admin))

        assert response.status_code == 201
        assert sorted(response.json()["roles"]) == ["employee", "hrbp"]

        login = client.post("/api/auth/login", data={"username": "newhire", "password": "welcome123"})
        assert login.status_code == 200

    def test_manager_cannot_create_users(self, client, test_user):
        response = client.post("/api/admin/users", json={
            "email": "x@acme.com",
            "username": "xuser",
            "full_name": "X",
            "employee_number": "EMP901",
            "password": "welcome123",
        }, headers=auth_headers(test_user))

        assert response.status_code == 403


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
