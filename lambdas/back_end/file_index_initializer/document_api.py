import copy
from typing import Any, Dict, List, Optional

import requests
from aws_lambda_powertools import Logger, Tracer
from pydantic import ValidationError

from credentials import ClientCredentials
from lambda_error_handler import (
    ApiError,
    AuthenticationError,
    ResourceNotFoundError,
    handle_api_response,
)
from models import FileDescriptor
from settings import ScanMetadataConfig

logger = Logger()
tracer = Tracer()

API_NAME = "WFDM"
METADATA_RESOURCE_TYPE = "http://resources.wfdm.nrs.gov.bc.ca/fileMetadataResource"


class WfdmDocumentApi:
    """Thin client for the parts of the WFDM document API the initializer needs"""

    def __init__(
        self,
        api_url: str,
        token_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 60.0,
        scan_metadata: Optional[ScanMetadataConfig] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.token_url = token_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.scan_metadata = scan_metadata or ScanMetadataConfig()

    def _document_url(self, file_id: str) -> str:
        return f"{self.api_url}/documents/{file_id}"

    @staticmethod
    def _auth_headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    @tracer.capture_method
    def get_access_token(self, credentials: ClientCredentials) -> str:
        """Exchange the client identity for a bearer token (client credentials grant)"""
        logger.info(f"Requesting WFDM access token for client {credentials.client_id}")
        response = self.session.get(
            self.token_url,
            params={
                "disableDeveloperFilter": "true",
                "grant_type": "client_credentials",
            },
            auth=(credentials.client_id, credentials.client_secret),
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )

        if response.status_code != 200:
            logger.error(
                f"Token request failed with status code: {response.status_code}"
            )
            raise AuthenticationError(
                "Could not authorize access for WFDM", status_code=response.status_code
            )

        try:
            token = response.json().get("access_token")
        except ValueError:
            token = None

        if not token:
            raise AuthenticationError(
                "WFDM token response did not contain an access_token",
                status_code=response.status_code,
            )
        return token

    @tracer.capture_method
    def get_file_information(self, token: str, file_id: str) -> FileDescriptor:
        url = self._document_url(file_id)
        response = self.session.get(
            url, headers=self._auth_headers(token), timeout=self.timeout
        )

        if response.status_code == 404:
            raise ResourceNotFoundError(
                f"File {file_id} not found on WFDM",
                resource_type="file",
                resource_id=file_id,
            )

        document = handle_api_response(response, API_NAME, url, success_codes=[200])

        try:
            return FileDescriptor.from_document(document)
        except ValidationError as e:
            raise ApiError(
                message=f"Malformed file information for {file_id}: {e.error_count()} invalid field(s)",
                status_code=response.status_code,
                api_name=API_NAME,
                endpoint=url,
                response=document,
            )

    def _with_scan_metadata(
        self, document: Dict[str, Any], version_number: str
    ) -> Dict[str, Any]:
        entries = {
            self.scan_metadata.status_name: self.scan_metadata.pending_value,
            self.scan_metadata.version_name: version_number,
        }
        updated = copy.deepcopy(document)
        metadata: List[Dict[str, Any]] = [
            item
            for item in (updated.get("metadata") or [])
            if item.get("metadataName") not in entries
        ]
        for name, value in entries.items():
            metadata.append(
                {
                    "@type": METADATA_RESOURCE_TYPE,
                    "metadataName": name,
                    "metadataValue": value,
                }
            )
        updated["metadata"] = metadata
        return updated

    @tracer.capture_method
    def set_virus_scan_metadata(
        self,
        token: str,
        file_id: str,
        version_number: str,
        descriptor: FileDescriptor,
    ) -> bool:
        """
        Mark the file version as pending a virus scan.

        Returns False instead of raising, the caller decides whether a failed
        write stops the transfer.
        """
        url = self._document_url(file_id)
        body = self._with_scan_metadata(descriptor.document, version_number)
        headers = {**self._auth_headers(token), "Content-Type": "application/json"}

        try:
            response = self.session.put(
                url, json=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Virus scan metadata update for {file_id} failed: {str(e)}")
            return False

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Virus scan metadata update for {file_id} returned status code: {response.status_code}",
                extra={"response": response.text},
            )
            return False
        return True

    @tracer.capture_method
    def get_file_stream(self, token: str, file_id: str, version_number: str):
        """Open a streaming download of one file version, returns a file-like object"""
        url = f"{self._document_url(file_id)}/bytes"
        response = self.session.get(
            url,
            params={"versionNumber": version_number},
            headers={**self._auth_headers(token), "Accept": "*/*"},
            stream=True,
            timeout=self.timeout,
        )

        if response.status_code == 404:
            response.close()
            raise ResourceNotFoundError(
                f"Version {version_number} of file {file_id} not found on WFDM",
                resource_type="file",
                resource_id=file_id,
            )
        if response.status_code != 200:
            handle_api_response(response, API_NAME, url, success_codes=[200])

        response.raw.decode_content = True
        return response.raw
