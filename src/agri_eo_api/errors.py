from fastapi import HTTPException


def invalid_parameter(description: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "code": "InvalidParameterValue",
            "description": description,
        },
    )
