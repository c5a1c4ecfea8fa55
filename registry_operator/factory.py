"""Builds the Kubernetes and monitoring resources for a registry application."""

from __future__ import annotations

import os
from typing import Any, Dict

REGISTRY_CONTAINER_NAME = "registry"

ENV_REGISTRY_VERSION = "REGISTRY_VERSION"
ENV_OPERATOR_NAME = "OPERATOR_NAME"

Resource = Dict[str, Any]


class FactoryError(RuntimeError):
    """A resource could not be built from the available inputs."""


def _probe(path: str) -> Resource:
    return {
        "httpGet": {"path": path, "port": 8080},
        "initialDelaySeconds": 15,
        "timeoutSeconds": 5,
        "periodSeconds": 10,
        "successThreshold": 1,
        "failureThreshold": 3,
    }


class KubeFactory:
    """Creates fresh resource documents named after the application."""

    def __init__(self, ctx: Any) -> None:
        self._ctx = ctx

    def get_labels(self) -> Dict[str, str]:
        """Labels for all resources; some may change, so never use them as selectors."""
        registry_version = os.environ.get(ENV_REGISTRY_VERSION, "")
        if registry_version == "":
            raise FactoryError(
                "Could not determine Registry version. Environment variable '"
                + ENV_REGISTRY_VERSION + "' is empty."
            )
        operator_name = os.environ.get(ENV_OPERATOR_NAME, "")
        if operator_name == "":
            raise FactoryError(
                "Could not determine Operator name. Environment variable '"
                + ENV_OPERATOR_NAME + "' is empty."
            )
        app = self._ctx.app_name
        return {
            "app": app,
            "apicur.io/type": "apicurio-registry",
            "apicur.io/name": app,
            "apicur.io/version": registry_version,
            "app.kubernetes.io/name": "apicurio-registry",
            "app.kubernetes.io/instance": app,
            "app.kubernetes.io/version": registry_version,
            "app.kubernetes.io/managed-by": operator_name,
        }

    def get_selector_labels(self) -> Dict[str, str]:
        """Labels that stay constant for the life of the application."""
        return {"app": self._ctx.app_name}

    def _object_meta(self, type_tag: str) -> Resource:
        return {
            "name": self._ctx.app_name + "-" + type_tag,
            "namespace": self._ctx.app_namespace,
            "labels": self.get_labels(),
        }

    def create_deployment(self) -> Resource:
        container = {
            "name": REGISTRY_CONTAINER_NAME,
            "resources": {
                "limits": {"cpu": "1", "memory": "1300Mi"},
                "requests": {"cpu": "500m", "memory": "512Mi"},
            },
            "livenessProbe": _probe("/health/live"),
            "readinessProbe": _probe("/health/ready"),
            "volumeMounts": [{"name": "tmp", "mountPath": "/tmp"}],
            "securityContext": {
                "capabilities": {"drop": ["ALL"]},
                "readOnlyRootFilesystem": False,
                "allowPrivilegeEscalation": False,
                "runAsNonRoot": True,
                "seccompProfile": {"type": "RuntimeDefault"},
            },
        }
        return {
            "metadata": self._object_meta("deployment"),
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": self.get_selector_labels()},
                "template": {
                    "spec": {
                        "containers": [container],
                        "terminationGracePeriodSeconds": 30,
                        "volumes": [{"name": "tmp", "emptyDir": {}}],
                    },
                },
                "strategy": {
                    "type": "RollingUpdate",
                    "rollingUpdate": {"maxUnavailable": 1, "maxSurge": 1},
                },
            },
        }

    def create_service(self) -> Resource:
        return {
            "metadata": self._object_meta("service"),
            "spec": {"selector": self.get_selector_labels()},
        }

    def create_ingress(self, service_name: str) -> Resource:
        if service_name == "":
            raise FactoryError("Required argument, Ingress name, is empty.")
        metadata = self._object_meta("ingress")
        metadata["annotations"] = {
            "nginx.ingress.kubernetes.io/force-ssl-redirect": "false",
            "nginx.ingress.kubernetes.io/rewrite-target": "/",
            "nginx.ingress.kubernetes.io/ssl-redirect": "false",
        }
        path = {
            "path": "/",
            "pathType": "Prefix",
            "backend": {
                "service": {"name": service_name, "port": {"number": 8080}},
            },
        }
        return {
            "metadata": metadata,
            "spec": {"rules": [{"http": {"paths": [path]}}]},
        }

    def create_network_policy(self, service_name: str) -> Resource:
        return {
            "metadata": self._object_meta("networkpolicy"),
            "spec": {
                "podSelector": {"matchLabels": self.get_selector_labels()},
                "policyTypes": ["Ingress"],
            },
        }

    def _pod_disruption_budget(self) -> Resource:
        return {
            "metadata": self._object_meta("pdb"),
            "spec": {
                "selector": {"matchLabels": self.get_selector_labels()},
                "maxUnavailable": 1,
            },
        }

    def create_pod_disruption_budget_v1(self) -> Resource:
        return self._pod_disruption_budget()

    def create_pod_disruption_budget_v1beta1(self) -> Resource:
        return self._pod_disruption_budget()


class MonitoringFactory:
    """Creates monitoring resources that scrape the application's service."""

    def __init__(self, ctx: Any, kube_factory: KubeFactory) -> None:
        self._ctx = ctx
        self._kube_factory = kube_factory

    def get_labels(self) -> Dict[str, str]:
        return self._kube_factory.get_labels()

    def get_selector_labels(self) -> Dict[str, str]:
        return self._kube_factory.get_selector_labels()

    def new_service_monitor(self, service: Resource) -> Resource:
        """Build a service monitor scraping ``/metrics`` on the service's first port."""
        ports = service.get("spec", {}).get("ports") or []
        if not ports:
            raise FactoryError("The service has no ports to monitor.")
        namespace = self._ctx.app_namespace
        return {
            "metadata": {
                "name": self._ctx.app_name,
                "namespace": namespace,
                "labels": self.get_labels(),
            },
            "spec": {
                "endpoints": [
                    {"path": "/metrics", "targetPort": ports[0].get("targetPort")},
                ],
                "namespaceSelector": {"matchNames": [namespace]},
                "selector": {"matchLabels": self.get_selector_labels()},
            },
        }