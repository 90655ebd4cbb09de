# Pipeline stages module
from .completion import CompletionClient
from .scraper import DomainScraper
from .icp_generator import ICPGenerator
from .qualifier import ProspectQualifier
