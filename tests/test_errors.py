from agri_eo_api.errors import invalid_parameter


def test_invalid_parameter_error_payload() -> None:
    error = invalid_parameter("lat must be between -90 and 90")

    assert error.status_code == 400
    assert error.detail == {
        "code": "InvalidParameterValue",
        "description": "lat must be between -90 and 90",
    }
