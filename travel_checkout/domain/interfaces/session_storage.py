"""Interface for session storage (Repository Pattern)."""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List


class ISessionStorage(ABC):
    """Interface for caching checkout session snapshots."""
    
    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a session snapshot.
        
        Args:
            session_id: Unique session identifier
            
        Returns:
            Snapshot dictionary or None if not found
        """
        pass
    
    @abstractmethod
    def set_session(self, session_id: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Store a session snapshot.
        
        Args:
            session_id: Unique session identifier
            data: Snapshot dictionary (JSON serializable)
            ttl: Optional time to live in seconds
        """
        pass
    
    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """
        Delete a session snapshot.
        
        Args:
            session_id: Unique session identifier
        """
        pass
    
    @abstractmethod
    def list_sessions(self) -> List[str]:
        """List identifiers of all stored sessions."""
        pass
