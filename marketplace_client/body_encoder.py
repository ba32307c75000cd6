"""Body Encoder - Chooses between a multipart form and a plain request body.

Form data always wins over body. Plain bodies are returned unchanged; JSON
serialization is left to the transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from marketplace_client.models import FileUpload, FormData, RequestBody, RequestOptions
from marketplace_client.url_builder import to_param_string


logger = logging.getLogger(__name__)


def _append_form_value(form: FormData, key: str, value: Any) -> None:
    """Append one value, choosing its representation by kind."""
    if value is None:
        return
    if isinstance(value, FileUpload):
        form.append(key, value)
        logger.debug("Appended file field %s (%s)", key, value.filename)
    elif isinstance(value, (bytes, bytearray)):
        form.append(key, FileUpload(content=bytes(value)))
        logger.debug("Appended binary field %s", key)
    elif isinstance(value, str):
        form.append(key, value)
        logger.debug("Appended string field %s", key)
    elif isinstance(value, (bool, int, float)):
        form.append(key, to_param_string(value))
        logger.debug("Appended %s field %s", type(value).__name__, key)
    else:
        # Last resort for nested objects
        form.append(key, json.dumps(value))
        logger.debug("Appended JSON field %s", key)


def get_form_data(options: RequestOptions) -> FormData | None:
    """Build the multipart form for options, or None when there is no form data.

    A prepared FormData is passed through unchanged. Otherwise every non-None
    entry is appended; lists append one field per element under the same name.
    A FormData given as the body (with no form_data) is treated as the form.
    """
    if options.form_data is None:
        if isinstance(options.body, FormData):
            return options.body
        return None

    if isinstance(options.form_data, FormData):
        return options.form_data

    form = FormData()
    logger.debug("Constructing form data from fields: %s", list(options.form_data))

    for key, value in options.form_data.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if item is None:
                    logger.debug("Skipping empty item %d in form field %s", index, key)
                    continue
                _append_form_value(form, key, item)
        else:
            _append_form_value(form, key, value)

    return form


def get_request_body(options: RequestOptions) -> RequestBody | None:
    """Return the plain body to send, or None when form data is present."""
    if options.form_data is not None:
        if options.body is not None:
            logger.warning("Both form data and body are present, using form data")
        return None
    if isinstance(options.body, FormData):
        return None
    return options.body
