"""
Run configuration for a corpus coverage measurement.
"""

import argparse
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

DEFAULT_DRIVER_CLASS = "RegressionTestDriver"
DEFAULT_BATCH_GLOB = "test*"


class RunConfig(BaseModel):
    """Settings shared by every batch of one corpus run."""
    
    corpus_dir: Path = Field(..., description="Directory whose subdirectories are the projects")
    coverage_agent: Path = Field(..., description="Path to the JaCoCo runtime agent jar")
    harness_classpath: str = Field(..., description="Classpath of the JUnit harness libraries")
    output_dir: Path = Field(..., description="Directory where per-batch outputs and reports are written")
    safety_agent: Path = Field(..., description="Path to the replacecall agent jar")
    driver_class: str = Field(DEFAULT_DRIVER_CLASS, description="Main class that runs a generated test batch")
    batch_glob: str = Field(DEFAULT_BATCH_GLOB, description="Pattern naming test batch directories under build/classes")
    java_home: Optional[Path] = Field(None, description="JDK to run the batches with; the PATH java otherwise")
    
    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "RunConfig":
        """Build the configuration from parsed command line arguments."""
        return cls(
            corpus_dir=args.corpus_dir,
            coverage_agent=args.coverage_agent,
            harness_classpath=args.harness_classpath,
            output_dir=args.output_dir,
            safety_agent=args.safety_agent,
            driver_class=args.driver_class,
            batch_glob=args.batch_glob,
            java_home=args.java_home
        )
    
    @property
    def java_executable(self) -> str:
        if self.java_home is not None:
            return str(self.java_home / "bin" / "java")
        return "java"
    
    def subprocess_env(self) -> Dict[str, str]:
        """Environment for the batch subprocess."""
        env = os.environ.copy()
        if self.java_home is not None:
            env['JAVA_HOME'] = str(self.java_home)
            env['PATH'] = f"{self.java_home}/bin:{env.get('PATH', '')}"
        return env
    
    def find_problems(self) -> List[str]:
        """Check settings that would make every batch fail and return the problems found."""
        problems = []
        
        if not self.coverage_agent.is_file():
            problems.append(f"Coverage agent not found: {self.coverage_agent}")
        if not self.safety_agent.is_file():
            problems.append(f"Replacecall agent not found: {self.safety_agent}")
        if not self.harness_classpath.strip():
            problems.append("Harness classpath is empty")
        if not self.driver_class.strip():
            problems.append("Driver class name is empty")
        
        return problems
